"""
Log Relay Supervisor

Wires a container's output into the relay logger: builds the logger, asks the
follower to start streaming into two pipes, runs one pump per pipe and waits
for the shutdown event.
"""

import asyncio
import functools
import logging
import os
import sys
from typing import Any, List, Mapping, Optional, TextIO

from sidecar_relay.core.config import RelayConfig
from sidecar_relay.core.logging import logger
from sidecar_relay.schemas.relay import ContainerContext, StreamKind
from sidecar_relay.services.docker_log_follower import DockerLogFollower
from sidecar_relay.services.relay_logger import configure_log_relay
from sidecar_relay.services.stream_pump import StreamPump


class LogRelay:
    """
    Relays one container's stdout/stderr to syslog.

    relay_logs() returns as soon as the shutdown event fires; it does not
    wait for the pumps. They stay reachable through ``pumps`` for callers
    that want to await them.
    """

    def __init__(
        self,
        config: RelayConfig,
        follower: Optional[DockerLogFollower] = None,
        docker_client: Any = None,
        diag: logging.Logger = logger,
    ):
        self.config = config
        self.follower = follower or DockerLogFollower()
        self.docker_client = docker_client
        self.diag = diag
        self.pumps: List[asyncio.Task] = []

    async def relay_logs(
        self,
        shutdown: asyncio.Event,
        container_id: str,
        labels: Mapping[str, str],
        output: Optional[TextIO] = None,
    ) -> None:
        context = ContainerContext(container_id=container_id, labels=labels)
        relay_logger = configure_log_relay(
            self.config, context, output if output is not None else sys.stdout, diag=self.diag
        )

        relay_logger.info(f"sidecar-executor starting log pump for '{context.short_id}'")
        self.diag.info("Started syslog log pump")

        out_rd, out_wr = self._open_pipe()
        err_rd, err_wr = self._open_pipe()

        # The follower owns the write ends from here on
        try:
            self.follower.follow_logs(self.docker_client, container_id, 0, out_wr, err_wr)
        except Exception:
            for pipe_end in (out_rd, out_wr, err_rd, err_wr):
                pipe_end.close()
            raise

        for kind, stream in ((StreamKind.STDOUT, out_rd), (StreamKind.STDERR, err_rd)):
            pump = StreamPump(
                kind.value,
                relay_logger,
                stream,
                shutdown,
                diag=self.diag,
                max_line_bytes=self.config.max_line_bytes,
            )
            task = asyncio.create_task(pump.run(), name=f"log-pump-{kind.value}-{context.short_id}")
            task.add_done_callback(functools.partial(self._close_reader, stream))
            self.pumps.append(task)

        await shutdown.wait()

    @staticmethod
    def _close_reader(stream, task: asyncio.Task) -> None:
        # A cancelled pump may still have a read in flight on this stream
        if not task.cancelled():
            stream.close()

    @staticmethod
    def _open_pipe():
        read_fd, write_fd = os.pipe()
        return os.fdopen(read_fd, "rb"), os.fdopen(write_fd, "wb")
