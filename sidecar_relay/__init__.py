"""
Sidecar Log Relay

Relays a Docker container's stdout/stderr to a UDP syslog sink as structured
JSON records tagged with the container's labels.
"""

__version__ = "0.1.0"
