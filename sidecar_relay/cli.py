"""Main CLI entry point"""

import asyncio
import signal
import threading
from functools import wraps

import click

from sidecar_relay.core.config import settings
from sidecar_relay.core.exceptions import AppException
from sidecar_relay.core.logging import logger
from sidecar_relay.core.logging_config import setup_logging
from sidecar_relay.services.docker_client import connect_docker
from sidecar_relay.services.docker_log_follower import DockerLogFollower, get_container, inspect_container
from sidecar_relay.services.log_relay import LogRelay


def error_handler(func):
    """Decorator to report relay errors and exit non-zero"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except AppException as e:
            click.echo(f"Error: {e.message}", err=True)
            ctx = click.get_current_context()
            ctx.exit(1)

    return wrapper


def watch_container_exit(client, container_id: str, loop: asyncio.AbstractEventLoop, shutdown: asyncio.Event):
    """Fire the shutdown event once the container stops."""
    def wait():
        try:
            get_container(client, container_id).wait()
            logger.info(f"Container {container_id[:12]} exited")
        except Exception as e:
            logger.error(f"Error waiting on container {container_id[:12]}: {e}")
        loop.call_soon_threadsafe(shutdown.set)

    thread = threading.Thread(target=wait, name=f"wait-{container_id[:12]}", daemon=True)
    thread.start()
    return thread


async def run_relay(relay: LogRelay, follower: DockerLogFollower, container_id: str, labels, grace: float):
    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown.set)

    watch_container_exit(relay.docker_client, container_id, loop, shutdown)

    try:
        await relay.relay_logs(shutdown, container_id, labels)
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)

    # Closing the Docker streams ends the pipes, which lets blocked pumps finish
    follower.stop()
    if relay.pumps:
        _, pending = await asyncio.wait(relay.pumps, timeout=grace)
        if pending:
            logger.warning(f"{len(pending)} log pump(s) still running after {grace}s, abandoning them")
            # Their reads stay parked on daemon threads, which do not block exit
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)


@click.command()
@click.argument('container_id')
@click.option('--syslog-addr', default=None, help='UDP syslog sink as host:port')
@click.option('--label', '-l', 'labels', multiple=True,
              help='Docker label to attach to every record (repeatable)')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              default=settings.log_level, help='Local diagnostic log level')
@click.option('--report-caller', is_flag=True, default=None, help='Fill the Func field of relayed records')
@click.option('--grace', type=float, default=5.0, show_default=True,
              help='Seconds to wait for pumps to drain after shutdown')
@click.version_option(settings.app_version)
@error_handler
def cli(container_id, syslog_addr, labels, log_level, report_caller, grace):
    """Relay a container's stdout/stderr to UDP syslog"""
    setup_logging(log_level, relayed_container_id=container_id)

    config = settings.relay_config(
        syslog_addr=syslog_addr,
        send_docker_labels=tuple(labels) if labels else None,
        report_caller=report_caller,
    )

    client = connect_docker()
    try:
        context = inspect_container(client, container_id)
        follower = DockerLogFollower()
        relay = LogRelay(config, follower=follower, docker_client=client)
        asyncio.run(run_relay(relay, follower, context.container_id, dict(context.labels), grace))
    finally:
        client.close()


if __name__ == '__main__':
    cli()
