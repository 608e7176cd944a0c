__version__ = "1.0.0"

from .src.errors import (
    ScpiSessionError,
    UnknownOperation,
    ValidationError,
    InvalidTimebase,
    UnknownFilterType,
    TransportFailure,
    QueryFailed,
    TransportBusy,
)
from .src.catalog import (
    Catalog,
    InstrumentContext,
    MathMode,
    Operation,
    build_catalog,
    filter_frequency_range,
    DEFAULT_CATALOG,
)
from .src.builder import CommandBuilder, PlanStep, TransitionPlan
from .src.sequencer import QueryResult, SessionResult, SessionSequencer, StepEvent
from .src.readback import (
    ChannelSettings,
    MathSettings,
    TimebaseSettings,
    TriggerSettings,
    context_from,
    measure,
    read_channel,
    read_math,
    read_timebase,
    read_trigger,
)
from .src.device_manager import Transport, VisaTransport
from .src.terminal import ColorPrinter

__all__ = [
    "ScpiSessionError",
    "UnknownOperation",
    "ValidationError",
    "InvalidTimebase",
    "UnknownFilterType",
    "TransportFailure",
    "QueryFailed",
    "TransportBusy",
    "Catalog",
    "InstrumentContext",
    "MathMode",
    "Operation",
    "build_catalog",
    "filter_frequency_range",
    "DEFAULT_CATALOG",
    "CommandBuilder",
    "PlanStep",
    "TransitionPlan",
    "QueryResult",
    "SessionResult",
    "SessionSequencer",
    "StepEvent",
    "ChannelSettings",
    "MathSettings",
    "TimebaseSettings",
    "TriggerSettings",
    "context_from",
    "measure",
    "read_channel",
    "read_math",
    "read_timebase",
    "read_trigger",
    "Transport",
    "VisaTransport",
    "ColorPrinter",
]
