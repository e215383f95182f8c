"""
Stream Pump

Drains one line-oriented byte stream from a container into the relay logger.
"""

import asyncio
import logging
from typing import BinaryIO, Optional

from sidecar_relay.core.daemon_executor import DaemonThreadExecutor
from sidecar_relay.core.exceptions import LineTooLongError
from sidecar_relay.core.logging import logger
from sidecar_relay.schemas.relay import STREAM_LEVELS


DEFAULT_MAX_LINE_BYTES = 64 * 1024


class StreamPump:
    """
    Turns each line of a stream into one relayed record.

    The shutdown event is only looked at after a line has been emitted. A
    pump blocked in readline() keeps waiting until the stream produces more
    output or closes, so it can outlive a shutdown request. The pump never
    closes its stream; the writer side owns that.
    """

    def __init__(
        self,
        name: str,
        relay_logger: logging.LoggerAdapter,
        stream: BinaryIO,
        shutdown: asyncio.Event,
        diag: logging.Logger = logger,
        max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
    ):
        self.name = name
        self.relay_logger = relay_logger
        self.stream = stream
        self.shutdown = shutdown
        self.diag = diag
        self.max_line_bytes = max_line_bytes
        self.lines_relayed = 0

    async def run(self) -> None:
        level = STREAM_LEVELS.get(self.name)
        if level is None:
            self.diag.error(f"handle_one_stream(): Unknown stream type '{self.name}'. Exiting log pump.")
            return

        # Reads that never return must not hold up interpreter exit
        reader = DaemonThreadExecutor(name=f"log-pump-{self.name}")
        try:
            while True:
                try:
                    text = await self._read_line(reader)
                except LineTooLongError as e:
                    self._log_read_error(e.message)
                    break
                except (OSError, ValueError) as e:
                    self._log_read_error(str(e))
                    break

                if text is None:
                    break

                self.diag.debug(f"docker: {text}")
                self.relay_logger.log(level, text)
                self.lines_relayed += 1

                if self.shutdown.is_set():
                    self.diag.debug(f"Shutdown requested, stopping log pump '{self.name}'")
                    return
        finally:
            reader.shutdown(wait=False)

        self.diag.warning(f"Log pump exited for '{self.name}'")

    async def _read_line(self, reader: DaemonThreadExecutor) -> Optional[str]:
        """Next line without its terminator, or None at end of stream."""
        loop = asyncio.get_running_loop()
        raw = await loop.run_in_executor(reader, self.stream.readline, self.max_line_bytes + 1)
        if not raw:
            return None

        if raw.endswith(b"\n"):
            raw = raw[:-1]
        elif len(raw) > self.max_line_bytes:
            raise LineTooLongError(self.name, self.max_line_bytes)
        if raw.endswith(b"\r"):
            raw = raw[:-1]

        return raw.decode("utf-8", errors="replace")

    def _log_read_error(self, message: str) -> None:
        self.diag.error(
            f"handle_one_stream() error reading Docker log input: '{message}'. "
            f"Exiting log pump '{self.name}'."
        )

