import re
import threading

import pytest

from ds1000z_scpi.mock_instruments import MockScope
from ds1000z_scpi.src.catalog import MathMode, Operation
from ds1000z_scpi.src.device_manager import Transport
from ds1000z_scpi.src.errors import QueryFailed, TransportBusy, TransportFailure
from ds1000z_scpi.src.sequencer import SessionSequencer, transport_guard


class TimeoutTransport(Transport):
    def send(self, command):
        raise TimeoutError("VI_ERROR_TMO")

    def query(self, command):
        raise TimeoutError("VI_ERROR_TMO")


def test_single_command_success(sequencer, scope, sleeps):
    result = sequencer.run(Operation.SET_VERTICAL_SCALE, {"channel": 1, "scale": 0.5})
    assert result.success
    assert result
    assert result.sent_commands == (":CHANnel1:SCALe 0.5",)
    assert scope.sent == [":CHANnel1:SCALe 0.5"]
    assert sleeps.calls == []
    assert "completed" in result.log[-1]


def test_state_reaches_the_instrument(sequencer, scope):
    sequencer.run(Operation.SET_COUPLING, {"channel": 2, "coupling": "AC"})
    assert scope.state[":CHANNEL2:COUPLING"] == "AC"


def test_fail_fast_on_second_send(sequencer, sleeps):
    sequencer.transport.fail_sends = {1}
    result = sequencer.run(Operation.APPLY_FFT, {"source": "CHANnel1", "window": "HANNing"})
    assert not result.success
    assert result.failed_step == 1
    assert result.sent_commands == (":MATH:DISPlay ON", ":MATH:FFT:SOURce CHANnel1")
    assert result.failure.command == ":MATH:FFT:SOURce CHANnel1"
    assert len(sequencer.transport.sent) == 2
    assert sleeps.calls == [0.05]


def test_raise_for_failure(sequencer):
    sequencer.transport.fail_commands = {":MATH:DISPLAY"}
    result = sequencer.run(Operation.SET_MATH_DISPLAY, {"enabled": True})
    with pytest.raises(TransportFailure) as info:
        result.raise_for_failure()
    assert info.value.step == 0
    assert info.value.operation == "SetMathDisplay"


def test_raise_for_failure_returns_result_on_success(sequencer):
    result = sequencer.run(Operation.SET_MATH_DISPLAY, {"enabled": False})
    assert result.raise_for_failure() is result


def test_transport_exception_counts_as_failure(builder, sleeps):
    sequencer = SessionSequencer(TimeoutTransport(), builder=builder, sleep=sleeps)
    result = sequencer.run(Operation.APPLY_FFT)
    assert result.failed_step == 0
    assert "TimeoutError" in result.failure.reason
    assert result.sent_commands == (":MATH:DISPlay ON",)


def test_mode_switch_timing(sequencer, scope, sleeps):
    result = sequencer.switch_mode(MathMode.BASIC_OPERATIONS, MathMode.FFT_ANALYSIS)
    assert result.success
    assert sleeps.calls == [0.15, 0.5, 0.05, 0.05, 0.05, 0.05, 0.05]
    assert scope.sent[:3] == [":MATH:DISPlay OFF", ":MATH:OPERator FFT", ":MATH:DISPlay ON"]


def test_mode_switch_to_same_mode_sends_nothing(sequencer, scope):
    result = sequencer.switch_mode(MathMode.FFT_ANALYSIS, MathMode.FFT_ANALYSIS)
    assert result.success
    assert result.sent_commands == ()
    assert scope.sent == []


def test_progress_callback(sequencer):
    events = []
    sequencer.run(Operation.APPLY_BASIC_OPERATION, on_progress=events.append)
    assert [e.index for e in events] == [0, 1, 2, 3]
    assert {e.status for e in events} == {"sent"}
    assert events[0].command == ":MATH:DISPlay ON"


def test_progress_reports_failure(sequencer):
    sequencer.transport.fail_sends = {0}
    events = []
    sequencer.run(Operation.APPLY_FFT, on_progress=events.append)
    assert [e.status for e in events] == ["failed"]


def test_cancel_before_start(sequencer, scope):
    cancel = threading.Event()
    cancel.set()
    result = sequencer.run(Operation.APPLY_FFT, cancel=cancel)
    assert result.cancelled
    assert not result.success
    assert result.sent_commands == ()
    assert scope.sent == []


def test_cancel_between_steps(sequencer, scope):
    cancel = threading.Event()

    def stop_after_first(event):
        if event.index == 0:
            cancel.set()

    result = sequencer.run(Operation.APPLY_FFT, on_progress=stop_after_first, cancel=cancel)
    assert result.cancelled
    assert result.sent_commands == (":MATH:DISPlay ON",)
    assert scope.sent == [":MATH:DISPlay ON"]


def test_busy_transport_is_rejected(sequencer, scope):
    held = threading.Event()
    release = threading.Event()

    def hold():
        with transport_guard(scope).plan:
            held.set()
            release.wait(5)

    worker = threading.Thread(target=hold)
    worker.start()
    try:
        assert held.wait(5)
        with pytest.raises(TransportBusy):
            sequencer.run(Operation.SET_MATH_DISPLAY, {"enabled": True})
        # a second sequencer on the same transport shares the lock
        other = SessionSequencer(scope, sleep=lambda s: None)
        with pytest.raises(TransportBusy):
            other.run(Operation.SET_MATH_DISPLAY, {"enabled": True})
    finally:
        release.set()
        worker.join()
    assert scope.sent == []
    assert sequencer.run(Operation.SET_MATH_DISPLAY, {"enabled": True}).success


def test_wait_queues_behind_busy_transport(sequencer, scope):
    held = threading.Event()

    def hold():
        with transport_guard(scope).plan:
            held.set()
            threading.Event().wait(0.05)

    worker = threading.Thread(target=hold)
    worker.start()
    held.wait(5)
    result = sequencer.run(Operation.SET_MATH_DISPLAY, {"enabled": True}, wait=True)
    worker.join()
    assert result.success


def test_independent_transports_do_not_block(sequencer, scope):
    other_scope = MockScope()
    other = SessionSequencer(other_scope, sleep=lambda s: None)
    with transport_guard(scope).plan:
        outcome = []

        def run_other():
            outcome.append(other.run(Operation.SET_MATH_DISPLAY, {"enabled": True}).success)

        worker = threading.Thread(target=run_other)
        worker.start()
        worker.join(5)
    assert outcome == [True]


def test_nested_plan_from_progress_callback_is_rejected(sequencer, scope):
    nested = []

    def start_another(event):
        if event.index == 0:
            with pytest.raises(TransportBusy):
                sequencer.run(Operation.SET_MATH_OPERATOR, {"operator": "DIVide"})
            other = SessionSequencer(scope, sleep=lambda s: None)
            with pytest.raises(TransportBusy):
                other.run(Operation.SET_MATH_OPERATOR, {"operator": "DIVide"}, wait=True)
            nested.append(event.command)

    result = sequencer.run(Operation.APPLY_BASIC_OPERATION, on_progress=start_another)
    assert result.success
    assert nested == [":MATH:DISPlay ON"]
    assert scope.sent == [
        ":MATH:DISPlay ON",
        ":MATH:SOURce1 CHANnel1",
        ":MATH:SOURce2 CHANnel2",
        ":MATH:OPERator ADD",
    ]


def test_progress_callback_may_query(sequencer, scope):
    readings = []

    def read_display(event):
        readings.append(sequencer.query_bool(":MATH:DISPlay?").value)

    result = sequencer.run(Operation.SET_MATH_DISPLAY, {"enabled": True}, on_progress=read_display)
    assert result.success
    assert readings == [True]


def test_send_raw_goes_through_history(sequencer, scope):
    result = sequencer.send_raw("  :MATH:RESet ")
    assert result.success
    assert scope.sent == [":MATH:RESet"]
    assert sequencer.history[-1].endswith("RawCommand: :MATH:RESet")


def test_send_raw_failure_is_reported(builder, sleeps):
    seq = SessionSequencer(TimeoutTransport(), builder, sleep=sleeps)
    result = seq.send_raw(":RUN")
    assert not result.success
    assert result.failure.reason == "TimeoutError: VI_ERROR_TMO"
    assert seq.history[-1].endswith("RawCommand: :RUN (FAILED)")


def test_send_raw_rejects_empty_command(sequencer):
    with pytest.raises(ValueError):
        sequencer.send_raw("   ")


def test_send_raw_respects_busy_transport(sequencer, scope):
    with transport_guard(scope).plan:
        outcome = []

        def send_from_other_thread():
            try:
                sequencer.send_raw(":STOP")
            except TransportBusy:
                outcome.append("busy")

        worker = threading.Thread(target=send_from_other_thread)
        worker.start()
        worker.join(5)
    assert outcome == ["busy"]
    assert scope.sent == []


# --------------------------
# Queries
# --------------------------
def test_query_float(sequencer):
    result = sequencer.query_float(":CHANnel1:SCALe?")
    assert result.ok
    assert result.value == 1.0
    assert result.raw == "1.000000e+00"


def test_query_bool(sequencer):
    assert sequencer.query_bool(":CHANnel1:DISPlay?").value is True
    assert sequencer.query_bool(":CHANnel2:DISPlay?").value is False


def test_query_text(sequencer):
    assert sequencer.query_text(":CHANnel1:COUPling?").value == "DC"


def test_query_after_write(sequencer):
    sequencer.run(Operation.SET_TIMEBASE_SCALE, {"scale": 0.0005})
    assert sequencer.query_float(":TIMebase:MAIN:SCALe?").value == 0.0005


def test_unparseable_response(sequencer, scope):
    scope.responses[":CHANnel1:SCALe?"] = "1,5"
    result = sequencer.query_float(":CHANnel1:SCALe?")
    assert not result.ok
    assert result.raw == "1,5"
    assert result.value_or(2.0) == 2.0
    with pytest.raises(QueryFailed):
        result.unwrap()


def test_empty_response(sequencer, scope):
    scope.fail_queries.add(":CHANnel1:SCALe?")
    result = sequencer.query_float(":CHANnel1:SCALe?")
    assert result.error == "empty response"
    assert result.raw is None


def test_query_exception_is_reported(builder):
    sequencer = SessionSequencer(TimeoutTransport(), builder=builder)
    result = sequencer.query_text("*IDN?")
    assert not result.ok
    assert "TimeoutError" in result.error


def test_query_requires_question_mark(sequencer):
    with pytest.raises(ValueError):
        sequencer.query(":CHANnel1:SCALe")


def test_query_setting(sequencer):
    result = sequencer.query_setting("channel_probe", channel=1)
    assert result.command == ":CHANnel1:PROBe?"
    assert result.value == "1.000000e+01"


# --------------------------
# History
# --------------------------
def test_history_entries(sequencer):
    sequencer.run(Operation.SET_VERTICAL_SCALE, {"channel": 1, "scale": 0.5})
    assert re.match(r"^\[\d{2}:\d{2}:\d{2}\] SetVerticalScale: :CHANnel1:SCALe 0\.5$", sequencer.history[0])
    assert sequencer.last_command == sequencer.history[-1]


def test_history_marks_failed_command(sequencer):
    sequencer.transport.fail_sends = {0}
    sequencer.run(Operation.SET_MATH_DISPLAY, {"enabled": True})
    assert sequencer.history[-1].endswith("(FAILED)")


def test_history_is_bounded(sequencer):
    for _ in range(101):
        sequencer.run(Operation.SET_MATH_DISPLAY, {"enabled": True})
    assert len(sequencer.history) == 100


def test_format_history(sequencer):
    assert sequencer.format_history() == "No commands executed yet."
    sequencer.run(Operation.SET_MATH_OPERATOR, {"operator": "DIVide"})
    text = sequencer.format_history()
    assert text.splitlines()[0] == "=== Command History (1 commands) ==="
    assert text.splitlines()[1].startswith("001: [")
    sequencer.clear_history()
    assert sequencer.history == []
