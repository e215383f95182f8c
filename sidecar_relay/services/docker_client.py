"""
Docker daemon connection for the relay process.
"""

from typing import Optional

import docker
from docker.client import DockerClient
from docker.errors import DockerException

from sidecar_relay.core.config import Settings, settings as default_settings
from sidecar_relay.core.exceptions import DockerConnectionError
from sidecar_relay.core.logging import logger


def tls_config(settings: Settings) -> Optional[docker.tls.TLSConfig]:
    """Client certificates from ``docker_cert_path`` when TLS verification is on."""
    if not (settings.docker_tls_verify and settings.docker_cert_path):
        return None

    cert_path = settings.docker_cert_path.rstrip("/")
    return docker.tls.TLSConfig(
        client_cert=(f"{cert_path}/cert.pem", f"{cert_path}/key.pem"),
        ca_cert=f"{cert_path}/ca.pem",
        verify=True,
    )


def connect_docker(settings: Settings = default_settings) -> DockerClient:
    """
    Open one client for the lifetime of a relay run.

    Uses ``docker_host`` when configured, otherwise the standard DOCKER_*
    environment. The daemon is pinged once so a bad endpoint fails before any
    logs are relayed.
    """
    try:
        if settings.docker_host:
            tls = tls_config(settings)
            if tls is not None:
                client = docker.DockerClient(base_url=settings.docker_host, tls=tls)
            else:
                client = docker.DockerClient(base_url=settings.docker_host)
        else:
            client = docker.from_env()

        client.ping()
    except DockerException as e:
        raise DockerConnectionError(f"Failed to connect to Docker daemon: {e}")

    logger.debug(f"Connected to Docker daemon at {settings.docker_host or 'environment default'}")
    return client
