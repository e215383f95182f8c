"""
Docker Log Follower

Copies a container's stdout and stderr into two writable byte sinks on
background threads. The copy runs independently of whoever reads the other
end of the sinks and stops when the container's stream ends, a sink is
closed, or Docker reports an error.
"""

import threading
from typing import Any, BinaryIO, List, Optional

from docker.errors import APIError, DockerException, NotFound
from docker.models.containers import Container

from sidecar_relay.core.exceptions import DockerOperationError, ResourceNotFoundError
from sidecar_relay.core.logging import logger
from sidecar_relay.schemas.relay import ContainerContext, StreamKind


def get_container(client: Any, container_id: str) -> Container:
    try:
        return client.containers.get(container_id)
    except NotFound:
        raise ResourceNotFoundError("container", container_id)
    except APIError as e:
        raise DockerOperationError("get_container", str(e))


def inspect_container(client: Any, container_id: str) -> ContainerContext:
    """Capture a container's full id and labels."""
    container = get_container(client, container_id)
    labels = container.labels or {}
    return ContainerContext(container_id=container.id, labels=labels)


class DockerLogFollower:
    """Follows container logs into caller-supplied sinks"""

    def __init__(self, chunk_logger=logger):
        self.logger = chunk_logger
        self._streams: List[Any] = []
        self._lock = threading.Lock()
        self._stopped = False

    def stop(self) -> None:
        """
        Close every open Docker log stream.

        The copy threads then see end of stream and close their sinks, which
        in turn gives readers of the sinks an end of file.
        """
        with self._lock:
            self._stopped = True
            streams = self._streams[:]
            self._streams.clear()

        for stream in streams:
            self._close_stream(stream)

    def _track(self, stream: Any) -> bool:
        with self._lock:
            if self._stopped:
                return False
            self._streams.append(stream)
            return True

    def _untrack(self, stream: Any) -> None:
        with self._lock:
            if stream in self._streams:
                self._streams.remove(stream)

    def _close_stream(self, stream: Any) -> None:
        if hasattr(stream, "close"):
            try:
                stream.close()
            except Exception as e:
                self.logger.debug(f"Error closing Docker log stream: {e}")

    def follow_logs(
        self,
        client: Any,
        container_id: str,
        since: int,
        stdout_sink: BinaryIO,
        stderr_sink: BinaryIO,
    ) -> List[threading.Thread]:
        """
        Start copying the container's output.

        Args:
            client: Docker client
            container_id: Container to follow
            since: Unix timestamp to start from; 0 means only new output
            stdout_sink: Receives the container's stdout
            stderr_sink: Receives the container's stderr

        Returns:
            The two copy threads (already started)
        """
        container = get_container(client, container_id)

        log_kwargs = {
            "stream": True,
            "follow": True,
        }
        if since > 0:
            log_kwargs["since"] = since
        else:
            log_kwargs["tail"] = 0

        threads = []
        for kind, sink in ((StreamKind.STDOUT, stdout_sink), (StreamKind.STDERR, stderr_sink)):
            thread = threading.Thread(
                target=self._copy_stream,
                args=(container, kind, sink, log_kwargs),
                name=f"follow-{kind.value}-{container_id[:12]}",
                daemon=True,
            )
            thread.start()
            threads.append(thread)

        return threads

    def _copy_stream(
        self,
        container: Container,
        kind: StreamKind,
        sink: BinaryIO,
        log_kwargs: dict,
    ) -> None:
        short_id = (container.id or "")[:12]
        stream: Optional[Any] = None
        try:
            stream = container.logs(
                stdout=kind is StreamKind.STDOUT,
                stderr=kind is StreamKind.STDERR,
                **log_kwargs
            )
            if not self._track(stream):
                return
            for chunk in stream:
                if not chunk:
                    continue
                sink.write(chunk)
                sink.flush()
        except (BrokenPipeError, ValueError):
            # Reader went away or the sink was closed
            self.logger.debug(f"Sink closed for {kind.value} of {short_id}")
        except (APIError, DockerException) as e:
            self.logger.error(f"Error following {kind.value} logs for {short_id}: {e}")
        except Exception as e:
            if self._stopped:
                self.logger.debug(f"{kind.value} log stream for {short_id} ended after stop: {e}")
            else:
                self.logger.error(f"Error copying {kind.value} logs for {short_id}: {e}")
        finally:
            if stream is not None:
                self._untrack(stream)
                self._close_stream(stream)
            try:
                sink.close()
            except OSError as e:
                self.logger.debug(f"Error closing {kind.value} sink: {e}")
            self.logger.debug(f"Stopped following {kind.value} logs for {short_id}")
