"""
Exception types raised by the catalog, builder and session sequencer.

Every error names the operation and, where one applies, the parameter that
caused it so a front end can point at the offending control.
"""


class ScpiSessionError(Exception):
    """Base class for all session core errors."""


class UnknownOperation(ScpiSessionError, KeyError):
    """The operation (or query name) is not registered in the catalog."""

    def __init__(self, operation):
        self.operation = operation
        super().__init__(f"Unknown operation: {operation}")

    def __str__(self):
        return self.args[0]


class ValidationError(ScpiSessionError, ValueError):
    """
    A parameter is missing, out of range, or inconsistent with another one.

    Raised before anything is transmitted.

    Attributes:
        operation: Operation name the parameter belongs to
        parameter: Offending parameter name
        reason: Human-readable reason
    """

    def __init__(self, operation, parameter, reason):
        self.operation = str(operation)
        self.parameter = parameter
        self.reason = reason
        super().__init__(operation, parameter, reason)

    def __str__(self):
        # operation may be re-tagged by the builder after construction
        return f"{self.operation}.{self.parameter}: {self.reason}"


class InvalidTimebase(ValidationError):
    """Timebase must be a positive number of seconds per division."""

    def __init__(self, timebase, operation="FilterFrequencyRange"):
        self.timebase = timebase
        super().__init__(operation, "timebase", f"timebase must be > 0 s/div, got {timebase}")


class UnknownFilterType(ValidationError):
    """Filter type is not one of LPASs, HPASs, BPASs, BSTop."""

    def __init__(self, filter_type, operation="FilterFrequencyRange"):
        self.filter_type = filter_type
        super().__init__(operation, "filter_type", f"unknown filter type {filter_type!r}")


class TransportFailure(ScpiSessionError):
    """A send returned False (or raised) while executing a plan."""

    def __init__(self, operation, step, command, reason):
        self.operation = str(operation)
        self.step = step
        self.command = command
        self.reason = reason
        super().__init__(f"{self.operation} step {step} ({command!r}) failed: {reason}")


class QueryFailed(ScpiSessionError):
    """A query returned nothing, or text that does not parse as the expected type."""

    def __init__(self, command, raw, reason):
        self.command = command
        self.raw = raw
        self.reason = reason
        super().__init__(f"{command}: {reason} (raw={raw!r})")


class TransportBusy(ScpiSessionError):
    """Another plan is already in flight on the same transport."""

    def __init__(self, transport):
        self.transport = transport
        super().__init__(f"Transport {transport!r} is busy with another plan")
