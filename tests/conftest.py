"""
Pytest configuration and fixtures
"""

import io
import json
import logging
import socket
from typing import List

import pytest

from sidecar_relay.core.config import RelayConfig


CONTAINER_ID = "abc123def4567890fedcba9876543210abc123def4567890fedcba9876543210"


class FakeFollower:
    """Stand-in for DockerLogFollower that feeds canned output into the sinks"""

    def __init__(self, stdout: bytes = b"", stderr: bytes = b"", close_sinks: bool = True):
        self.stdout = stdout
        self.stderr = stderr
        self.close_sinks = close_sinks
        self.calls: List[tuple] = []
        self.sinks: List = []
        self.stopped = False

    def follow_logs(self, client, container_id, since, stdout_sink, stderr_sink):
        self.calls.append((client, container_id, since))
        self.sinks = [stdout_sink, stderr_sink]
        for sink, data in ((stdout_sink, self.stdout), (stderr_sink, self.stderr)):
            if data:
                sink.write(data)
                sink.flush()
        if self.close_sinks:
            self.close()
        return []

    def close(self):
        for sink in self.sinks:
            if not sink.closed:
                sink.close()

    def stop(self):
        self.stopped = True
        self.close()


@pytest.fixture
def udp_sink():
    """A bound UDP socket standing in for the syslog collector"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2.0)
    yield sock
    sock.close()


@pytest.fixture
def syslog_addr(udp_sink) -> str:
    host, port = udp_sink.getsockname()
    return f"{host}:{port}"


@pytest.fixture
def relay_config(syslog_addr) -> RelayConfig:
    return RelayConfig(syslog_addr=syslog_addr, send_docker_labels=("app",))


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def diag_caplog(caplog):
    caplog.set_level(logging.DEBUG, logger="sidecar_relay")
    return caplog


@pytest.fixture
def read_records():
    """Parse the JSON lines written to a relay output stream"""
    def _read(output: io.StringIO) -> List[dict]:
        return [json.loads(line) for line in output.getvalue().splitlines() if line.strip()]
    return _read


@pytest.fixture
def container_id() -> str:
    return CONTAINER_ID


@pytest.fixture
def fake_follower():
    return FakeFollower
