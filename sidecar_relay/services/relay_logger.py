"""
Relay Logger

Builds the structured logger that relayed container lines are written to:
JSON records with renamed standard keys, shipped to UDP syslog and mirrored
to an operator-visible output stream.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, TextIO

from sidecar_relay.core.config import RelayConfig
from sidecar_relay.core.exceptions import SinkError
from sidecar_relay.core.logging import logger
from sidecar_relay.schemas.relay import (
    ContainerContext,
    FIELD_FUNC,
    FIELD_LEVEL,
    FIELD_PAYLOAD,
    FIELD_TIMESTAMP,
    RESERVED_FIELDS,
)
from sidecar_relay.services.syslog_hook import new_udp_hook


RELAY_FIELDS_ATTR = "relay_fields"
RELAY_LOGGER_PREFIX = "sidecar_relay.relay"


class RelayJsonFormatter(logging.Formatter):
    """Format relayed records as single-line JSON objects"""

    def __init__(self, report_caller: bool = False):
        super().__init__()
        self.report_caller = report_caller

    def format(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc).astimezone()

        entry: Dict[str, Any] = {}

        # Labels that would overwrite a standard key get moved aside
        for key, value in (getattr(record, RELAY_FIELDS_ATTR, None) or {}).items():
            if key in RESERVED_FIELDS:
                entry[f"fields.{key}"] = value
            else:
                entry[key] = value

        entry[FIELD_TIMESTAMP] = dt.isoformat()
        entry[FIELD_LEVEL] = record.levelname.lower()
        entry[FIELD_PAYLOAD] = record.getMessage()
        entry[FIELD_FUNC] = record.funcName if self.report_caller and record.funcName else ""

        if record.exc_info:
            entry["Exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False)


class RelayLogger(logging.LoggerAdapter):
    """
    Logger handle with the container's label fields permanently attached.

    Fields travel in a single record attribute so label names can never
    collide with LogRecord's own attributes.
    """

    def process(self, msg, kwargs):
        extra = dict(kwargs.get("extra") or {})
        extra[RELAY_FIELDS_ATTR] = self.extra
        kwargs["extra"] = extra
        return msg, kwargs

    @property
    def fields(self) -> Mapping[str, str]:
        return self.extra


def _reset_handlers(relay_logger: logging.Logger) -> None:
    for handler in relay_logger.handlers[:]:
        relay_logger.removeHandler(handler)
        handler.close()


def configure_log_relay(
    config: RelayConfig,
    context: ContainerContext,
    output: Optional[TextIO] = None,
    diag: logging.Logger = logger,
) -> RelayLogger:
    """
    Build the relay logger for one container.

    A syslog hook that cannot be created is fatal: the process exits rather
    than relaying with partial log visibility.

    Args:
        config: Relay settings (sink address, label allow-list)
        context: Container whose labels supply the extra fields
        output: Text stream that receives a copy of every record
        diag: Local diagnostic logger

    Returns:
        RelayLogger bound to the filtered label fields
    """
    try:
        hook = new_udp_hook(config.syslog_addr)
    except SinkError as e:
        diag.critical(f"Error adding hook: {e.message}")
        sys.exit(1)

    formatter = RelayJsonFormatter(report_caller=config.report_caller)
    hook.setFormatter(formatter)

    stream_handler = logging.StreamHandler(output if output is not None else sys.stdout)
    stream_handler.setFormatter(formatter)

    syslogger = logging.getLogger(f"{RELAY_LOGGER_PREFIX}.{context.short_id}")
    _reset_handlers(syslogger)
    syslogger.setLevel(logging.DEBUG)
    syslogger.propagate = False
    syslogger.addHandler(hook)
    syslogger.addHandler(stream_handler)

    fields = context.relay_fields(config.send_docker_labels)
    return RelayLogger(syslogger, fields)
