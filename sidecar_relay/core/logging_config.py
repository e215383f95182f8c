import logging
import sys
import socket
from typing import Optional

# Docker sets a container's hostname to its short id by default
CONTAINER_HOSTNAME = socket.gethostname()

MIRROR_PREFIX = "docker: "


class SelfRelayFilter(logging.Filter):
    """Drop the per-line debug mirror when relaying our own container.

    Otherwise every mirrored line is written to our stdout, picked up by the
    relay again and mirrored again.
    """

    def __init__(self, relayed_container_id: Optional[str] = None, hostname: str = CONTAINER_HOSTNAME):
        super().__init__()
        self.is_self_relay = bool(
            relayed_container_id
            and hostname
            and relayed_container_id[:12].lower() == hostname[:12].lower()
        )

    def filter(self, record):
        if not self.is_self_relay:
            return True

        if record.levelno == logging.DEBUG and record.getMessage().startswith(MIRROR_PREFIX):
            return False

        return True


def setup_logging(level="INFO", relayed_container_id: Optional[str] = None):
    """Configure local diagnostic logging."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    console_handler.setFormatter(formatter)
    console_handler.addFilter(SelfRelayFilter(relayed_container_id))

    # Clear existing handlers and add our configured handler
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    # docker-py and urllib3 are chatty at debug level
    for name in ("docker", "urllib3"):
        logging.getLogger(name).setLevel(max(level, logging.INFO))

    return root_logger
