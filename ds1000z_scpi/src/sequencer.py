"""
Session sequencer: executes TransitionPlans over a Transport.

Commands of a plan go out strictly in order with their post-send delays.
The first refused command stops the plan (no retry); the result lists what
was actually sent so the caller can re-read instrument state before trying
again.
"""

import logging
import threading
import time
import weakref
from collections import deque, namedtuple
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from .builder import CommandBuilder, PlanStep, TransitionPlan
from .errors import QueryFailed, TransportBusy, TransportFailure
from .formatting import parse_bool, parse_number

HISTORY_LIMIT = 100
# Operation label for commands sent with send_raw()
RAW_COMMAND = "RawCommand"

logger = logging.getLogger(__name__)

StepEvent = namedtuple("StepEvent", ["operation", "index", "command", "status", "message"])
StepFailure = namedtuple("StepFailure", ["step", "command", "reason"])

# One guard per transport object, shared by every sequencer that uses it.
_transport_guards = weakref.WeakKeyDictionary()
_registry_lock = threading.Lock()


class _TransportGuard:
    """
    Serializes access to one transport.

    'plan' admits one plan at a time and is not re-entrant: a plan started
    from inside another plan's progress callback is refused. 'io' guards
    single transactions and is re-entrant, so a callback may still query.
    """

    def __init__(self):
        self.plan = threading.Lock()
        self.io = threading.RLock()
        self.plan_owner = None


def transport_guard(transport):
    with _registry_lock:
        guard = _transport_guards.get(transport)
        if guard is None:
            guard = _transport_guards[transport] = _TransportGuard()
        return guard


@dataclass(frozen=True)
class SessionResult:
    """
    Outcome of executing a plan.

    Attributes:
        operation: Operation the plan implemented
        success: True only if every command was accepted
        sent_commands: Commands handed to the transport, including a failed one
        failed_step: Index of the refused command, or None
        failure: StepFailure(step, command, reason), or None
        cancelled: True if the plan was stopped between steps
        log: Human-readable trail of the execution
    """

    operation: Any
    success: bool
    sent_commands: Tuple[str, ...] = ()
    failed_step: Optional[int] = None
    failure: Optional[StepFailure] = None
    cancelled: bool = False
    log: Tuple[str, ...] = ()

    def __bool__(self):
        return self.success

    def raise_for_failure(self):
        """Raise TransportFailure if a step was refused; return self otherwise."""
        if self.failure is not None:
            raise TransportFailure(self.operation, self.failure.step, self.failure.command, self.failure.reason)
        return self


@dataclass(frozen=True)
class QueryResult:
    """
    Parsed response to a query.

    A failed query never raises by itself: check .ok, use value_or() to keep
    a last-known value, or unwrap() to turn the failure into QueryFailed.
    """

    command: str
    raw: Optional[str]
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self):
        return self.error is None

    def value_or(self, fallback):
        return self.value if self.ok else fallback

    def unwrap(self):
        if not self.ok:
            raise QueryFailed(self.command, self.raw, self.error)
        return self.value


class SessionSequencer:
    """
    Drives one Transport.

    Args:
        transport: Object with send(command) -> bool and query(command) -> str | None
        builder: CommandBuilder used by run()/switch_mode() (default catalog if omitted)
        sleep: Callable used for post-send delays (time.sleep)
        history_limit: Number of history entries to keep
    """

    def __init__(self, transport, builder=None, sleep=time.sleep, history_limit=HISTORY_LIMIT):
        self.transport = transport
        self.builder = builder or CommandBuilder()
        self._sleep = sleep
        self._history = deque(maxlen=history_limit)

    @property
    def catalog(self):
        return self.builder.catalog

    # --------------------------
    # Plans
    # --------------------------
    def execute(self, plan: TransitionPlan, on_progress=None, cancel=None, wait: bool = False) -> SessionResult:
        """
        Send every step of a plan in order.

        Args:
            plan: TransitionPlan
            on_progress: Optional callable receiving a StepEvent per step
            cancel: Optional threading.Event, checked before each send
            wait: Block until the transport is free instead of raising TransportBusy

        Returns:
            SessionResult

        Raises:
            TransportBusy: If another plan holds the transport and wait is False,
                or if called from inside a running plan on the same transport
        """
        guard = transport_guard(self.transport)
        if guard.plan_owner == threading.get_ident():
            raise TransportBusy(self.transport)
        if not guard.plan.acquire(blocking=wait):
            raise TransportBusy(self.transport)
        guard.plan_owner = threading.get_ident()
        try:
            with guard.io:
                return self._run(plan, on_progress, cancel)
        finally:
            guard.plan_owner = None
            guard.plan.release()

    def _run(self, plan, on_progress, cancel):
        operation = plan.operation
        sent = []
        trail = [f"{operation}: {len(plan)} command(s) queued"]

        for index, step in enumerate(plan.steps):
            if cancel is not None and cancel.is_set():
                message = f"{operation}: cancelled before step {index}"
                logger.info(message)
                trail.append(message)
                self._notify(on_progress, StepEvent(operation, index, step.command, "cancelled", message))
                return SessionResult(operation, False, tuple(sent), cancelled=True, log=tuple(trail))

            sent.append(step.command)
            reason = None
            try:
                if not self.transport.send(step.command):
                    reason = "transport refused the command"
            except Exception as exc:
                # Transport-specific errors (timeouts, I/O) count as a refused send.
                reason = f"{type(exc).__name__}: {exc}"
            self._remember(operation, step.command, failed=reason is not None)

            if reason is not None:
                message = f"{operation}: step {index} {step.command!r} failed - {reason}"
                logger.warning(message)
                trail.append(message)
                self._notify(on_progress, StepEvent(operation, index, step.command, "failed", message))
                return SessionResult(
                    operation,
                    False,
                    tuple(sent),
                    failed_step=index,
                    failure=StepFailure(index, step.command, reason),
                    log=tuple(trail),
                )

            message = f"{operation}: sent {step.command}"
            logger.debug(message)
            trail.append(message)
            self._notify(on_progress, StepEvent(operation, index, step.command, "sent", message))
            if step.delay:
                self._sleep(step.delay)

        message = f"{operation}: completed ({len(sent)} command(s))"
        logger.info(message)
        trail.append(message)
        return SessionResult(operation, True, tuple(sent), log=tuple(trail))

    def run(self, operation, values: Optional[dict] = None, context=None, **kwargs) -> SessionResult:
        """Build and execute an operation. Extra kwargs go to execute()."""
        plan = self.builder.build(operation, values, context)
        return self.execute(plan, **kwargs)

    def switch_mode(
        self, current, target, values: Optional[dict] = None, reset: bool = False, context=None, **kwargs
    ) -> SessionResult:
        """Build and execute a MATH mode switch. Extra kwargs go to execute()."""
        plan = self.builder.build_mode_switch(current, target, values, reset=reset, context=context)
        return self.execute(plan, **kwargs)

    def send_raw(self, command: str, **kwargs) -> SessionResult:
        """
        Send one unvalidated SCPI command under the same lock and history as a plan.

        Raises:
            ValueError: If the command is empty
        """
        command = command.strip()
        if not command:
            raise ValueError("Empty command")
        plan = TransitionPlan(RAW_COMMAND, (PlanStep(command),))
        return self.execute(plan, **kwargs)

    @staticmethod
    def _notify(callback, event):
        if callback is not None:
            callback(event)

    # --------------------------
    # Queries
    # --------------------------
    def query(self, command: str, parser=None, wait: bool = True) -> QueryResult:
        """
        Send a query and parse the response.

        Args:
            command: SCPI query (must contain '?')
            parser: Optional callable str -> value, raising ValueError on bad text
            wait: Block until the transport is free instead of raising TransportBusy

        Returns:
            QueryResult
        """
        if "?" not in command:
            raise ValueError(f"Not a query (missing '?'): {command!r}")

        io = transport_guard(self.transport).io
        if not io.acquire(blocking=wait):
            raise TransportBusy(self.transport)
        try:
            raw = self.transport.query(command)
        except Exception as exc:
            logger.warning("Query %s raised %s: %s", command, type(exc).__name__, exc)
            return QueryResult(command, None, error=f"{type(exc).__name__}: {exc}")
        finally:
            io.release()

        if raw is None or not str(raw).strip():
            logger.warning("Query %s returned no data", command)
            return QueryResult(command, raw, error="empty response")

        text = str(raw).strip()
        if parser is None:
            return QueryResult(command, text, text)
        try:
            value = parser(text)
        except ValueError as exc:
            logger.warning("Query %s returned unparseable %r: %s", command, text, exc)
            return QueryResult(command, text, error=str(exc))
        return QueryResult(command, text, value)

    def query_float(self, command: str, **kwargs) -> QueryResult:
        return self.query(command, parse_number, **kwargs)

    def query_bool(self, command: str, **kwargs) -> QueryResult:
        return self.query(command, parse_bool, **kwargs)

    def query_text(self, command: str, **kwargs) -> QueryResult:
        return self.query(command, None, **kwargs)

    def query_setting(self, name: str, parser=None, **fields) -> QueryResult:
        """Query a catalog setting by name, e.g. query_setting('channel_scale', parse_number, channel=1)."""
        return self.query(self.catalog.query_command(name, **fields), parser)

    # --------------------------
    # History
    # --------------------------
    def _remember(self, operation, command, failed=False):
        stamp = time.strftime("%H:%M:%S")
        suffix = " (FAILED)" if failed else ""
        self._history.append(f"[{stamp}] {operation}: {command}{suffix}")

    @property
    def history(self):
        return list(self._history)

    @property
    def last_command(self):
        return self._history[-1] if self._history else ""

    def clear_history(self):
        self._history.clear()

    def format_history(self):
        if not self._history:
            return "No commands executed yet."
        lines = [f"=== Command History ({len(self._history)} commands) ==="]
        for index, entry in enumerate(self._history, start=1):
            lines.append(f"{index:03d}: {entry}")
        return "\n".join(lines)
