"""Tests for Filter and Logger dispatch."""

import threading

import pytest

from logroute.exceptions import InvalidLogLevelError, LoggedError
from logroute.levels import Level
from logroute.logger import Filter, Logger
from tests.helpers.writers import FailingWriter, MemoryWriter

# =============================================================================
# Filter
# =============================================================================


@pytest.mark.unit
class TestFilter:
    """Test Filter acceptance."""

    def test_threshold(self, memory_writer):
        flt = Filter("f", Level.INFO, memory_writer)
        assert flt.accepts(Level.INFO, "app")
        assert flt.accepts(Level.CRITICAL, "app")
        assert not flt.accepts(Level.DEBUG, "app")

    def test_excludes_are_prefixes(self, memory_writer):
        flt = Filter("f", Level.DEBUG, memory_writer, ("vendor.noisy",))
        assert not flt.accepts(Level.ERROR, "vendor.noisy.client:10")
        assert not flt.accepts(Level.ERROR, "vendor.noisy")
        assert flt.accepts(Level.ERROR, "vendor.quiet:3")
        assert flt.accepts(Level.ERROR, "app.vendor.noisy")

    def test_empty_excludes_dropped(self, memory_writer):
        flt = Filter("f", Level.DEBUG, memory_writer, ("", "  ", "x"))
        assert flt.excludes == ("x",)
        assert flt.accepts(Level.DEBUG, "anything")

    def test_threshold_resolved_from_name(self, memory_writer):
        assert Filter("f", "warn", memory_writer).threshold is Level.WARNING

    def test_invalid_threshold_raises(self, memory_writer):
        with pytest.raises(InvalidLogLevelError):
            Filter("f", "loud", memory_writer)


# =============================================================================
# Filter management
# =============================================================================


@pytest.mark.unit
class TestFilterManagement:
    """Test adding, replacing and listing filters."""

    def test_add_filter(self, logger, memory_writer):
        flt = logger.add_filter("mem", Level.INFO, memory_writer)
        assert "mem" in logger
        assert len(logger) == 1
        assert logger.filters["mem"] is flt

    def test_last_write_wins(self, logger):
        first, second = MemoryWriter(), MemoryWriter()
        logger.add_filter("mem", Level.DEBUG, first)
        logger.add_filter("mem", Level.ERROR, second)

        logger.log(Level.ERROR, "app", "boom")

        assert len(logger) == 1
        assert logger.filters["mem"].threshold is Level.ERROR
        assert first.messages == []
        assert second.messages == ["boom"]
        assert first.closed == 1

    def test_replacing_with_same_writer_keeps_it_open(self, logger, memory_writer):
        logger.add_filter("mem", Level.DEBUG, memory_writer)
        logger.add_filter("mem", Level.INFO, memory_writer)
        assert memory_writer.closed == 0

    def test_filters_snapshot_is_read_only(self, logger, memory_writer):
        logger.add_filter("mem", Level.INFO, memory_writer)
        with pytest.raises(TypeError):
            logger.filters["other"] = None  # type: ignore[index]

    def test_replace_filters(self, logger):
        old, new = MemoryWriter(), MemoryWriter()
        logger.add_filter("old", Level.INFO, old)

        logger.replace_filters([Filter("new", Level.INFO, new)])

        assert list(logger.filters) == ["new"]
        assert old.closed == 1
        assert new.closed == 0

    def test_with_console(self, stream):
        lg = Logger.with_console(Level.INFO, stream=stream, format="%L %M")
        lg.debug("hidden")
        lg.info("shown")
        lg.close()
        assert stream.getvalue() == "INFO shown\n"


# =============================================================================
# Dispatch
# =============================================================================


@pytest.mark.unit
class TestDispatch:
    """Test log, logf and log_with."""

    def test_log_respects_thresholds(self, logger):
        info, error = MemoryWriter(), MemoryWriter()
        logger.add_filter("info", Level.INFO, info)
        logger.add_filter("error", Level.ERROR, error)

        logger.log(Level.DEBUG, "app", "d")
        logger.log(Level.WARNING, "app", "w")
        logger.log(Level.CRITICAL, "app", "c")

        assert info.messages == ["w", "c"]
        assert error.messages == ["c"]

    def test_record_shared_by_writers(self, logger):
        a, b = MemoryWriter(), MemoryWriter()
        logger.add_filter("a", Level.DEBUG, a)
        logger.add_filter("b", Level.DEBUG, b)

        logger.log(Level.INFO, "app.mod:1", "hi")

        assert a.records[0] is b.records[0]
        assert a.records[0].source == "app.mod:1"
        assert a.records[0].level is Level.INFO

    def test_no_filters_is_noop(self, logger):
        logger.log(Level.CRITICAL, "app", "nobody listens")
        logger.info("still nobody")

    def test_logf_formats(self, logger, memory_writer):
        logger.add_filter("mem", Level.DEBUG, memory_writer)
        logger.logf(Level.INFO, "%s=%d", "count", 3)
        logger.logf(Level.INFO, "100% literal")
        assert memory_writer.messages == ["count=3", "100% literal"]

    def test_logf_source_is_caller(self, logger, memory_writer):
        logger.add_filter("mem", Level.DEBUG, memory_writer)
        logger.logf(Level.INFO, "here")
        assert ".test_logf_source_is_caller:" in memory_writer.records[0].source

    def test_logf_skips_formatting_when_disabled(self, logger, memory_writer):
        class Exploding:
            def __str__(self):
                raise AssertionError("formatted")

        logger.add_filter("mem", Level.ERROR, memory_writer)
        logger.logf(Level.DEBUG, "%s", Exploding())
        assert memory_writer.records == []

    def test_logf_mismatched_arguments_appended(self, logger, memory_writer):
        logger.add_filter("mem", Level.DEBUG, memory_writer)
        logger.logf(Level.INFO, "%d", "not a number")
        logger.logf(Level.INFO, "retries", 3)
        assert memory_writer.messages == ["%d not a number", "retries 3"]

    def test_closure_not_called_below_thresholds(self, logger, memory_writer):
        calls = []
        logger.add_filter("mem", Level.ERROR, memory_writer)

        logger.log_with(Level.INFO, lambda: calls.append(1) or "msg")

        assert calls == []
        assert memory_writer.records == []

    def test_closure_called_once_for_many_filters(self, logger):
        calls = []
        writers = [MemoryWriter() for _ in range(3)]
        for i, w in enumerate(writers):
            logger.add_filter(f"w{i}", Level.DEBUG, w)

        logger.log_with(Level.INFO, lambda: calls.append(1) or "msg")

        assert calls == [1]
        assert [w.messages for w in writers] == [["msg"]] * 3

    def test_closure_not_called_when_source_excluded(self, logger, memory_writer):
        calls = []
        logger.add_filter("mem", Level.DEBUG, memory_writer, excludes=[__name__])

        logger.log_with(Level.INFO, lambda: calls.append(1) or "msg")

        assert calls == []

    def test_closure_exception_propagates(self, logger, memory_writer):
        logger.add_filter("mem", Level.DEBUG, memory_writer)

        def bad():
            raise ValueError("closure failed")

        with pytest.raises(ValueError, match="closure failed"):
            logger.log_with(Level.INFO, bad)

    def test_failing_writer_does_not_stop_others(self, logger, memory_writer, capsys):
        logger.add_filter("bad", Level.DEBUG, FailingWriter())
        logger.add_filter("mem", Level.DEBUG, memory_writer)

        logger.log(Level.INFO, "app", "still delivered")

        assert memory_writer.messages == ["still delivered"]
        assert "sink exploded" in capsys.readouterr().err

    def test_is_enabled(self, logger, memory_writer):
        assert not logger.is_enabled(Level.CRITICAL)
        logger.add_filter("mem", Level.TRACE, memory_writer)

        assert logger.is_enabled("trace")
        assert logger.is_info_enabled()
        assert logger.is_error_enabled()
        assert not logger.is_debug_enabled()
        assert not logger.is_fine_enabled()
        assert not logger.is_finest_enabled()

    def test_is_enabled_ignores_excludes(self, logger, memory_writer):
        logger.add_filter("mem", Level.INFO, memory_writer, excludes=["app"])
        assert logger.is_warn_enabled()

    def test_concurrent_add_and_log(self, logger):
        stop = threading.Event()
        writers = [MemoryWriter() for _ in range(20)]

        def reconfigure():
            for i, w in enumerate(writers):
                logger.add_filter(f"w{i % 4}", Level.DEBUG, w)
            stop.set()

        t = threading.Thread(target=reconfigure)
        t.start()
        while not stop.is_set():
            logger.info("tick")
        t.join()

        assert len(logger) == 4


# =============================================================================
# Convenience layer
# =============================================================================


@pytest.mark.unit
class TestConvenience:
    """Test argument-shape dispatch and error-returning methods."""

    @pytest.fixture
    def mem(self, logger):
        writer = MemoryWriter()
        logger.add_filter("mem", Level.FINEST, writer)
        return writer

    def test_format_string(self, logger, mem):
        logger.info("user %s logged in from %s", "ann", "10.0.0.1")
        assert mem.messages == ["user ann logged in from 10.0.0.1"]

    def test_closure(self, logger, mem):
        logger.debug(lambda: "lazy")
        assert mem.messages == ["lazy"]

    def test_print_style(self, logger, mem):
        logger.info(42, "items", 3.5)
        assert mem.messages == ["42 items 3.5"]

    def test_extra_arguments_appended(self, logger, mem):
        logger.info("queue depth", 12)
        logger.debug("%s of %s", "one")
        assert mem.messages == ["queue depth 12", "%s of %s one"]

    def test_closure_receives_arguments(self, logger, mem):
        logger.info(lambda name: f"hello {name}", "ann")
        assert mem.messages == ["hello ann"]

    @pytest.mark.parametrize(
        "method,level",
        [
            ("finest", Level.FINEST),
            ("fine", Level.FINE),
            ("debug", Level.DEBUG),
            ("trace", Level.TRACE),
            ("info", Level.INFO),
            ("access", Level.ACCESS),
            ("warn", Level.WARNING),
            ("error", Level.ERROR),
        ],
    )
    def test_levels(self, logger, mem, method, level):
        getattr(logger, method)("x")
        assert mem.records[0].level is level

    def test_source_is_call_site(self, logger, mem):
        logger.info("where")
        assert ".test_source_is_call_site:" in mem.records[0].source

    def test_error_returns_logged_error(self, logger, mem):
        err = logger.error("bad input %r", "x")
        assert isinstance(err, LoggedError)
        assert isinstance(err, Exception)
        assert err.message == "bad input 'x'"
        assert err.level is Level.ERROR
        assert str(err) == "bad input 'x'"
        assert mem.messages == ["bad input 'x'"]

    def test_raise_error(self, logger, mem):
        with pytest.raises(LoggedError, match="cannot open"):
            raise logger.error("cannot open %s", "/tmp/x")

    def test_warn_renders_even_when_disabled(self, logger):
        calls = []
        err = logger.warn(lambda: calls.append(1) or "lazy warning")
        assert calls == [1]
        assert err.message == "lazy warning"
        assert err.level is Level.WARNING

    def test_critical_appends_stack(self, logger, mem):
        err = logger.critical("fatal %d", 7)

        logged = mem.messages[0]
        assert logged.startswith("fatal 7\n")
        assert "test_critical_appends_stack" in logged
        assert err.message == "fatal 7"

    def test_critical_one_argument_closure(self, logger, mem):
        err = logger.critical(lambda code: f"exit status {code}", 3)

        assert err.message == "exit status 3"
        assert mem.messages[0].startswith("exit status 3\n")


# =============================================================================
# recover
# =============================================================================


@pytest.mark.unit
class TestRecover:
    """Test Logger.recover()."""

    @pytest.fixture
    def mem(self, logger):
        writer = MemoryWriter()
        logger.add_filter("mem", Level.DEBUG, writer)
        return writer

    def test_suppresses_and_logs(self, logger, mem):
        reached = False
        with logger.recover("job %s failed", "j1") as scope:
            raise ZeroDivisionError("division by zero")
        reached = True

        assert reached
        record = mem.records[0]
        assert record.level is Level.CRITICAL
        assert record.message.startswith("job j1 failed\ndivision by zero\n")
        assert "Traceback" in record.message
        assert "ZeroDivisionError" in record.message
        assert ".test_suppresses_and_logs:" in record.source
        assert scope.error is not None
        assert scope.error.message == "job j1 failed\ndivision by zero"

    def test_no_exception_logs_nothing(self, logger, mem):
        with logger.recover("unused") as scope:
            pass
        assert mem.records == []
        assert scope.error is None

    def test_reraise(self, logger, mem):
        with pytest.raises(KeyError):
            with logger.recover("lookup failed", reraise=True):
                raise KeyError("k")
        assert len(mem.records) == 1

    def test_one_argument_callable_receives_exception(self, logger, mem):
        with logger.recover(lambda exc: f"handler crashed: {exc}"):
            raise RuntimeError("oops")
        assert mem.messages[0].startswith("handler crashed: oops\n")

    def test_zero_argument_callable(self, logger, mem):
        with logger.recover(lambda: "something broke"):
            raise RuntimeError("oops")
        assert mem.messages[0].startswith("something broke\n")

    def test_literal_percent_in_message(self, logger, mem):
        with logger.recover("disk 100% full") as scope:
            raise RuntimeError("boom")

        assert mem.messages[0].startswith("disk 100% full\nboom\n")
        assert scope.error.message == "disk 100% full\nboom"

    def test_mismatched_format_arguments(self, logger, mem):
        with logger.recover("job %d failed", "j1"):
            raise RuntimeError("boom")

        assert mem.messages[0].startswith("job %d failed j1\nboom\n")

    def test_default_message_is_repr(self, logger, mem):
        with logger.recover():
            raise ValueError("v")
        assert mem.messages[0].startswith("ValueError('v')\n")

    def test_decorator(self, logger, mem):
        @logger.recover("handle failed")
        def handle():
            raise RuntimeError("inner")

        assert handle() is None
        assert mem.messages[0].startswith("handle failed\ninner\n")
        assert "handle" in mem.records[0].source

    def test_keyboard_interrupt_not_caught(self, logger, mem):
        with pytest.raises(KeyboardInterrupt):
            with logger.recover("never"):
                raise KeyboardInterrupt
        assert mem.records == []


# =============================================================================
# Lifecycle
# =============================================================================


@pytest.mark.unit
class TestClose:
    """Test close() and the context manager."""

    def test_close_is_idempotent(self, memory_writer):
        lg = Logger()
        lg.add_filter("mem", Level.INFO, memory_writer)

        assert lg.close() == 0
        assert lg.close() == 0
        assert memory_writer.closed == 1
        assert len(lg) == 0

    def test_close_empty_logger(self):
        assert Logger().close() == 0

    def test_shared_writer_closed_once(self, memory_writer):
        lg = Logger()
        lg.add_filter("a", Level.INFO, memory_writer)
        lg.add_filter("b", Level.ERROR, memory_writer)
        lg.close()
        assert memory_writer.closed == 1

    def test_discarded_summary(self, capsys):
        lg = Logger()
        lg.add_filter("a", Level.INFO, MemoryWriter(discarded=2))
        lg.add_filter("b", Level.INFO, MemoryWriter(discarded=3))

        assert lg.close() == 5
        assert "5 record(s) discarded" in capsys.readouterr().err

    def test_no_summary_without_discards(self, memory_writer, capsys):
        lg = Logger()
        lg.add_filter("mem", Level.INFO, memory_writer)
        lg.close()
        assert capsys.readouterr().err == ""

    def test_log_after_close_is_noop(self, memory_writer):
        lg = Logger()
        lg.add_filter("mem", Level.INFO, memory_writer)
        lg.close()
        lg.info("dropped")
        assert memory_writer.records == []

    def test_context_manager(self, memory_writer):
        with Logger() as lg:
            lg.add_filter("mem", Level.INFO, memory_writer)
            lg.info("inside")
        assert memory_writer.closed == 1
        assert memory_writer.messages == ["inside"]
