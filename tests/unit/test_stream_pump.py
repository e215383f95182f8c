"""
Unit tests for the stream pump
"""

import asyncio
import io
import logging
import os
import threading
from unittest.mock import Mock

import pytest

from sidecar_relay.schemas.relay import ContainerContext
from sidecar_relay.services.relay_logger import configure_log_relay
from sidecar_relay.services.stream_pump import StreamPump


def relayed(relay_logger):
    """(level, text) pairs sent to a mocked relay logger"""
    return [c.args for c in relay_logger.log.call_args_list]


class TestStreamPump:
    """Test cases for StreamPump"""

    @pytest.fixture
    def relay_logger(self):
        return Mock()

    @pytest.fixture
    def shutdown(self):
        return asyncio.Event()

    @pytest.mark.asyncio
    async def test_stdout_lines_relayed_at_info(self, relay_logger, shutdown):
        stream = io.BytesIO(b"one\ntwo\nthree\n")

        await StreamPump("stdout", relay_logger, stream, shutdown).run()

        assert relayed(relay_logger) == [
            (logging.INFO, "one"),
            (logging.INFO, "two"),
            (logging.INFO, "three"),
        ]

    @pytest.mark.asyncio
    async def test_stderr_lines_relayed_at_error(self, relay_logger, shutdown):
        stream = io.BytesIO(b"bad\nworse\n")

        await StreamPump("stderr", relay_logger, stream, shutdown).run()

        assert relayed(relay_logger) == [(logging.ERROR, "bad"), (logging.ERROR, "worse")]

    @pytest.mark.asyncio
    async def test_line_terminators_are_stripped(self, relay_logger, shutdown):
        stream = io.BytesIO(b"crlf\r\n\nlast line without newline\r")

        await StreamPump("stdout", relay_logger, stream, shutdown).run()

        assert [text for _, text in relayed(relay_logger)] == ["crlf", "", "last line without newline"]

    @pytest.mark.asyncio
    async def test_invalid_utf8_passes_through(self, relay_logger, shutdown):
        stream = io.BytesIO(b"caf\xc3\xa9 \xff\n")

        await StreamPump("stdout", relay_logger, stream, shutdown).run()

        assert relayed(relay_logger) == [(logging.INFO, "café �")]

    @pytest.mark.asyncio
    async def test_clean_end_of_stream(self, relay_logger, shutdown, diag_caplog):
        stream = io.BytesIO(b"only\n")
        pump = StreamPump("stdout", relay_logger, stream, shutdown)

        await pump.run()

        assert pump.lines_relayed == 1
        assert not any(r.levelno >= logging.ERROR for r in diag_caplog.records)
        warnings = [r.getMessage() for r in diag_caplog.records if r.levelno == logging.WARNING]
        assert warnings == ["Log pump exited for 'stdout'"]

    @pytest.mark.asyncio
    async def test_lines_mirrored_to_diagnostic_log(self, relay_logger, shutdown, diag_caplog):
        await StreamPump("stdout", relay_logger, io.BytesIO(b"mirror me\n"), shutdown).run()

        assert any(
            r.levelno == logging.DEBUG and r.getMessage() == "docker: mirror me"
            for r in diag_caplog.records
        )

    @pytest.mark.asyncio
    async def test_stream_is_left_open(self, relay_logger, shutdown):
        stream = io.BytesIO(b"x\n")

        await StreamPump("stdout", relay_logger, stream, shutdown).run()

        assert not stream.closed

    @pytest.mark.asyncio
    async def test_unknown_stream_kind(self, relay_logger, shutdown, diag_caplog):
        stream = Mock()

        await StreamPump("stdin", relay_logger, stream, shutdown).run()

        stream.readline.assert_not_called()
        relay_logger.log.assert_not_called()
        errors = [r.getMessage() for r in diag_caplog.records if r.levelno == logging.ERROR]
        assert errors == ["handle_one_stream(): Unknown stream type 'stdin'. Exiting log pump."]

    @pytest.mark.asyncio
    async def test_read_error_stops_pump(self, relay_logger, shutdown, diag_caplog):
        stream = Mock()
        stream.readline.side_effect = [b"before\n", OSError("pipe broke")]

        await StreamPump("stderr", relay_logger, stream, shutdown).run()

        assert relayed(relay_logger) == [(logging.ERROR, "before")]
        errors = [r.getMessage() for r in diag_caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert "pipe broke" in errors[0]
        assert "stderr" in errors[0]
        assert "Log pump exited for 'stderr'" in diag_caplog.text

    @pytest.mark.asyncio
    async def test_overlong_line_stops_pump(self, relay_logger, shutdown, diag_caplog):
        stream = io.BytesIO(b"short\n0123456789abcdef\nnever\n")

        await StreamPump("stdout", relay_logger, stream, shutdown, max_line_bytes=8).run()

        assert relayed(relay_logger) == [(logging.INFO, "short")]
        assert "line exceeds 8 bytes" in diag_caplog.text

    @pytest.mark.asyncio
    async def test_line_at_limit_is_accepted(self, relay_logger, shutdown):
        stream = io.BytesIO(b"12345678\n12345678")

        await StreamPump("stdout", relay_logger, stream, shutdown, max_line_bytes=8).run()

        assert relayed(relay_logger) == [(logging.INFO, "12345678"), (logging.INFO, "12345678")]

    @pytest.mark.asyncio
    async def test_shutdown_checked_after_each_line(self, relay_logger, shutdown, diag_caplog):
        shutdown.set()
        stream = io.BytesIO(b"first\nsecond\nthird\n")

        await StreamPump("stdout", relay_logger, stream, shutdown).run()

        assert relayed(relay_logger) == [(logging.INFO, "first")]
        assert "Log pump exited" not in diag_caplog.text

    @pytest.mark.asyncio
    async def test_shutdown_with_no_input(self, relay_logger, shutdown):
        shutdown.set()

        await StreamPump("stdout", relay_logger, io.BytesIO(b""), shutdown).run()

        relay_logger.log.assert_not_called()

    @pytest.mark.asyncio
    async def test_shutdown_during_stream(self, relay_logger, shutdown):
        stream = Mock()

        def readline(size):
            if stream.readline.call_count == 2:
                shutdown.set()
            return b"line %d\n" % stream.readline.call_count

        stream.readline.side_effect = readline

        await StreamPump("stdout", relay_logger, stream, shutdown).run()

        assert relayed(relay_logger) == [(logging.INFO, "line 1"), (logging.INFO, "line 2")]

    @pytest.mark.asyncio
    async def test_blocked_read_runs_on_daemon_thread(self, relay_logger, shutdown):
        read_fd, write_fd = os.pipe()
        stream = os.fdopen(read_fd, "rb")
        task = asyncio.create_task(StreamPump("stdout", relay_logger, stream, shutdown).run())

        for _ in range(500):
            readers = [t for t in threading.enumerate() if t.name == "log-pump-stdout"]
            if readers:
                break
            await asyncio.sleep(0.01)
        assert readers and all(t.daemon for t in readers)

        # Cancelling does not wait for the read to come back
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await asyncio.wait_for(task, timeout=5)

        os.close(write_fd)
        for thread in readers:
            thread.join(5)
        stream.close()
        relay_logger.log.assert_not_called()

class TestStreamPumpWithRelayLogger:
    """End-to-end through a real relay logger"""

    @pytest.mark.asyncio
    async def test_labelled_stdout_records(self, relay_config, output, container_id, read_records):
        context = ContainerContext(container_id, {"app": "web", "env": "prod"})
        relay_logger = configure_log_relay(relay_config, context, output)

        await StreamPump("stdout", relay_logger, io.BytesIO(b"hello\nworld\n"), asyncio.Event()).run()

        records = read_records(output)
        assert [(r["Level"], r["Payload"]) for r in records] == [("info", "hello"), ("info", "world")]
        for record in records:
            assert record["app"] == "web"
            assert "env" not in record

    @pytest.mark.asyncio
    async def test_stderr_records_reach_syslog(self, relay_config, output, udp_sink, container_id):
        relay_logger = configure_log_relay(relay_config, ContainerContext(container_id), output)

        await StreamPump("stderr", relay_logger, io.BytesIO(b"fatal: disk full\n"), asyncio.Event()).run()

        data, _ = udp_sink.recvfrom(65535)
        assert data.startswith(b"<11>")
        assert b'"Payload": "fatal: disk full"' in data
