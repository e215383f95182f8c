"""
UDP syslog sink for relayed records.

Delivery is best effort: one datagram per record, no acknowledgement, no
retries and no backpressure. The relay never ships logs off the box, so
losing a datagram is acceptable.
"""

import logging
import socket
from logging.handlers import SysLogHandler
from typing import Tuple

from sidecar_relay.core.exceptions import SyslogAddressError, SyslogHookError


def parse_syslog_addr(address: str) -> Tuple[str, int]:
    """Split ``host:port`` (or ``[v6addr]:port``) into its parts."""
    if not address or not address.strip():
        raise SyslogAddressError(address, "address is empty")

    host, sep, port = address.strip().rpartition(":")
    if not sep:
        raise SyslogAddressError(address, "missing port")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        raise SyslogAddressError(address, "IPv6 addresses must be bracketed")

    if not host:
        raise SyslogAddressError(address, "missing host")

    try:
        port_num = int(port)
    except ValueError:
        raise SyslogAddressError(address, f"invalid port '{port}'")

    if not 0 < port_num < 65536:
        raise SyslogAddressError(address, f"port {port_num} out of range")

    return host, port_num


class UDPSyslogHandler(SysLogHandler):
    """
    SysLogHandler pinned to UDP that resolves its target up front.

    The stdlib handler already serialises emits with its own lock and routes
    send failures to handleError, which is the fire-and-forget behaviour we
    want from the sink.
    """

    append_nul = False

    def __init__(self, address: str, facility: int = SysLogHandler.LOG_USER):
        host, port = parse_syslog_addr(address)
        self.syslog_addr = address
        try:
            super().__init__(address=(host, port), facility=facility, socktype=socket.SOCK_DGRAM)
        except OSError as e:
            raise SyslogHookError(address, str(e))


def new_udp_hook(address: str) -> UDPSyslogHandler:
    return UDPSyslogHandler(address)
