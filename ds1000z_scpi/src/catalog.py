"""
Command catalog for the Rigol DS1000Z(-E) oscilloscope family.
Instrument Type: digital storage oscilloscope (MATH, CHANnel, TIMebase subsystems)

Protocol: SCPI over USB-TMC/VISA or LAN
Based on the DS1000Z-E Programming Guide

The catalog is a plain immutable value. Build one with build_catalog() and
hand it to CommandBuilder / SessionSequencer; DEFAULT_CATALOG exists only
as a convenience for scripts and the REPL.
"""

from collections import namedtuple
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Optional, Tuple

from .errors import InvalidTimebase, UnknownFilterType, UnknownOperation, ValidationError
from .formatting import format_bool, format_number, parse_bool, parse_number

# Fixed firmware timing (seconds). Measured on hardware, not tunable.
COMMAND_DELAY = 0.05
SETTLE_DELAY = 0.15
MODE_CHANGE_DELAY = 0.5


class Operation(str, Enum):
    """Logical operations the catalog knows how to render."""

    SET_CHANNEL_DISPLAY = "SetChannelDisplay"
    SET_PROBE_RATIO = "SetProbeRatio"
    SET_VERTICAL_SCALE = "SetVerticalScale"
    SET_VERTICAL_OFFSET = "SetVerticalOffset"
    SET_COUPLING = "SetCoupling"
    SET_BANDWIDTH_LIMIT = "SetBandwidthLimit"
    SET_CHANNEL_INVERT = "SetChannelInvert"
    SET_CHANNEL_UNITS = "SetChannelUnits"
    SET_MATH_DISPLAY = "SetMathDisplay"
    SET_MATH_OPERATOR = "SetMathOperator"
    APPLY_BASIC_OPERATION = "ApplyBasicOperation"
    APPLY_FFT = "ApplyFFT"
    SET_FFT_HORIZONTAL_SCALE = "SetFFTHorizontalScale"
    SET_FFT_CENTER_FREQUENCY = "SetFFTCenterFrequency"
    SET_DIGITAL_FILTER = "SetDigitalFilter"
    SET_ADVANCED_MATH = "SetAdvancedMath"
    SET_MATH_DISPLAY_CONTROL = "SetMathDisplayControl"
    SET_TIMEBASE_SCALE = "SetTimebaseScale"
    SET_TIMEBASE_OFFSET = "SetTimebaseOffset"
    SET_TIMEBASE_MODE = "SetTimebaseMode"
    SET_DELAYED_TIMEBASE = "SetDelayedTimebase"
    SET_TRIGGER_MODE = "SetTriggerMode"
    SET_TRIGGER_SWEEP = "SetTriggerSweep"
    SET_TRIGGER_COUPLING = "SetTriggerCoupling"
    SET_TRIGGER_HOLDOFF = "SetTriggerHoldoff"
    SET_TRIGGER_NOISE_REJECT = "SetTriggerNoiseReject"
    SET_TRIGGER_LEVEL = "SetTriggerLevel"
    CONFIGURE_EDGE_TRIGGER = "ConfigureEdgeTrigger"
    SET_MEASURE_SOURCE = "SetMeasureSource"
    ADD_MEASUREMENT = "AddMeasurement"
    CLEAR_MEASUREMENT = "ClearMeasurement"
    SET_MEASURE_STATISTICS = "SetMeasureStatistics"
    SWITCH_MATH_MODE = "SwitchMathMode"

    def __str__(self):
        return self.value


class MathMode(str, Enum):
    """Which family of MATH functions is active on the instrument."""

    BASIC_OPERATIONS = "BasicOperations"
    FFT_ANALYSIS = "FFTAnalysis"
    DIGITAL_FILTERS = "DigitalFilters"
    ADVANCED_MATH = "AdvancedMath"

    def __str__(self):
        return self.value


class ParamKind(Enum):
    ENUM = "enum"
    BOUNDED = "bounded"
    NUMERIC = "numeric"
    BOOL = "bool"
    CHANNEL = "channel"


# Parameter domains
OPERATORS = ("ADD", "SUBtract", "MULtiply", "DIVide")
FFT_WINDOWS = ("RECTangular", "BLACkman", "HANNing", "HAMMing")
FFT_SPLIT_MODES = ("FULL", "CENTer")
FFT_UNITS = ("VRMS", "DB")
LOW_PASS, HIGH_PASS, BAND_PASS, BAND_STOP = "LPASs", "HPASs", "BPASs", "BSTop"
FILTER_TYPES = (LOW_PASS, HIGH_PASS, BAND_PASS, BAND_STOP)
BAND_FILTERS = (BAND_PASS, BAND_STOP)
ADVANCED_FUNCTIONS = ("INTG", "DIFF", "SQRT", "LG", "LN", "EXP", "ABS")
COUPLINGS = ("DC", "AC", "GND")
BANDWIDTH_LIMITS = ("OFF", "20M")
CHANNEL_UNITS = ("VOLTage", "WATT", "AMPere", "UNKNown")
PROBE_RATIOS = (
    0.01, 0.02, 0.05, 0.1, 0.2, 0.5, 1, 2, 5, 10, 20, 50, 100, 200, 500, 1000
)
MATH_MODES = tuple(mode.value for mode in MathMode)

TIMEBASE_MIN = 5e-9
TIMEBASE_MAX = 50.0
TIMEBASE_MODES = ("MAIN", "XY", "ROLL")

TRIGGER_MODES = (
    "EDGe", "PULSe", "SLOPe", "VIDeo", "PATTern", "DURATion", "TIMeout", "RUNT",
    "WINDows", "DELay", "SHOLd", "NEDGe", "RS232", "IIC", "SPI",
)
TRIGGER_SWEEPS = ("AUTO", "NORMal", "SINGle")
TRIGGER_COUPLINGS = ("DC", "AC", "LFReject", "HFReject")
TRIGGER_SLOPES = ("POSitive", "NEGative", "RFALl")
TRIGGER_EXTRA_SOURCES = ("EXT", "ACLine")
HOLDOFF_MIN = 16e-9
HOLDOFF_MAX = 10.0
# Edge level spans the 8 vertical divisions of the source channel
TRIGGER_LEVEL_DIVISIONS = 4

MEASURE_ITEMS = (
    "VMAX", "VMIN", "VPP", "VTOP", "VBASe", "VAMP", "VAVG", "VRMS",
    "OVERshoot", "PREShoot", "MARea", "MPARea", "PERiod", "FREQuency",
    "RTIMe", "FTIMe", "PWIDth", "NWIDth", "PDUTy", "NDUTy", "TVMAX", "TVMIN",
    "PSLEWrate", "NSLEWrate", "VUPper", "VMID", "VLOWer", "VARIance", "PVRMS",
    "PPULses", "NPULses", "PEDGes", "NEDGes",
)
MEASURE_SLOTS = ("ITEM1", "ITEM2", "ITEM3", "ITEM4", "ITEM5", "ALL")
STATISTIC_MODES = ("DIFFerence", "EXTRemum")


@dataclass(frozen=True)
class InstrumentContext:
    """
    Live instrument state that some limits depend on.

    Attributes:
        timebase: Main timebase in seconds per division
        probe_ratio: Probe attenuation of the channel being configured
        vertical_scale: Current V/div of the channel being configured
        vertical_offset: Current offset (V) of that channel
    """

    timebase: Optional[float] = None
    probe_ratio: Optional[float] = None
    vertical_scale: Optional[float] = None
    vertical_offset: Optional[float] = None


EMPTY_CONTEXT = InstrumentContext()

FrequencyRange = namedtuple(
    "FrequencyRange", ["minimum", "maximum", "step", "w2_minimum", "w2_maximum"]
)


def filter_frequency_range(timebase_seconds, filter_type):
    """
    Cutoff frequency limits of the MATH digital filter for a given timebase.

    The filter works on the on-screen sample rate, 100 points per second of
    screen time, so the limits scale with 1/timebase.

    Args:
        timebase_seconds: Main timebase in s/div, must be > 0
        filter_type: 'LPASs', 'HPASs', 'BPASs' or 'BSTop'

    Returns:
        FrequencyRange(minimum, maximum, step, w2_minimum, w2_maximum).
        For band filters 'maximum' is the W1 ceiling.

    Raises:
        InvalidTimebase: If timebase_seconds is not a positive number
        UnknownFilterType: If filter_type is not recognized
    """
    try:
        timebase = parse_number(timebase_seconds)
    except ValueError:
        raise InvalidTimebase(timebase_seconds)
    if timebase <= 0:
        raise InvalidTimebase(timebase_seconds)

    canonical = _match_choice(filter_type, FILTER_TYPES)
    if canonical is None:
        raise UnknownFilterType(filter_type)

    screen_sample_rate = 100 / timebase
    step = 0.005 * screen_sample_rate
    minimum = 0.005 * screen_sample_rate
    if canonical in BAND_FILTERS:
        maximum = 0.095 * screen_sample_rate
    else:
        maximum = 0.1 * screen_sample_rate
    return FrequencyRange(
        minimum=minimum,
        maximum=maximum,
        step=step,
        w2_minimum=0.01 * screen_sample_rate,
        w2_maximum=0.1 * screen_sample_rate,
    )


def _match_choice(value, choices):
    """Case-insensitive lookup returning the catalog spelling, or None."""
    if not isinstance(value, str):
        return None
    wanted = value.strip().upper()
    for choice in choices:
        if choice.upper() == wanted:
            return choice
    return None


# Relative slack so products like 0.001 * 10 still equal the 0.01 limit.
def _at_least(value, lo):
    return value >= lo - 1e-9 * abs(lo)


def _at_most(value, hi):
    return value <= hi + 1e-9 * abs(hi)


def _in_range(value, lo, hi):
    return _at_least(value, lo) and _at_most(value, hi)


# --------------------------
# Context-aware checks
# --------------------------
# Signature: check(value, context, values) -> reason or None.
# 'values' holds the already-normalized parameters that precede this one.

def _positive(value, context, values):
    if value <= 0:
        return f"must be greater than 0, got {format_number(value)}"
    return None


def _vertical_scale(value, context, values):
    reason = _positive(value, context, values)
    if reason or context.probe_ratio is None:
        return reason
    lo, hi = 0.001 * context.probe_ratio, 10 * context.probe_ratio
    if not _in_range(value, lo, hi):
        return (
            f"must be within {format_number(lo)}..{format_number(hi)} V/div "
            f"for a {format_number(context.probe_ratio)}x probe"
        )
    return None


def _vertical_offset(value, context, values):
    if context.vertical_scale is None:
        return None
    limit = min(5 * context.vertical_scale, 1000.0)
    if not _at_most(abs(value), limit):
        return f"must be within ±{format_number(limit)} V at {format_number(context.vertical_scale)} V/div"
    return None


def _filter_w1(value, context, values):
    reason = _positive(value, context, values)
    if reason or context.timebase is None or "filter_type" not in values:
        return reason
    limits = filter_frequency_range(context.timebase, values["filter_type"])
    if not _in_range(value, limits.minimum, limits.maximum):
        return (
            f"must be within {format_number(limits.minimum)}..{format_number(limits.maximum)} Hz "
            f"at {format_number(context.timebase)} s/div"
        )
    return None


def _filter_w2(value, context, values):
    reason = _positive(value, context, values)
    if reason or context.timebase is None or "filter_type" not in values:
        return reason
    limits = filter_frequency_range(context.timebase, values["filter_type"])
    if not _in_range(value, limits.w2_minimum, limits.w2_maximum):
        return (
            f"must be within {format_number(limits.w2_minimum)}..{format_number(limits.w2_maximum)} Hz "
            f"at {format_number(context.timebase)} s/div"
        )
    return None


def _trigger_level(value, context, values):
    source = values.get("source")
    if context.vertical_scale is None or (source is not None and not source.startswith("CHANnel")):
        return None
    offset = context.vertical_offset or 0.0
    span = TRIGGER_LEVEL_DIVISIONS * context.vertical_scale
    lo, hi = -span - offset, span - offset
    if not _in_range(value, lo, hi):
        return (
            f"must be within {format_number(lo)}..{format_number(hi)} V "
            f"at {format_number(context.vertical_scale)} V/div"
        )
    return None


def _delayed_scale(value, context, values):
    reason = _positive(value, context, values)
    if reason or context.timebase is None:
        return reason
    if not _at_most(value, context.timebase):
        return f"must not exceed the main timebase ({format_number(context.timebase)} s/div)"
    return None


# --------------------------
# Cross-parameter checks
# --------------------------
# Signature: cross_check(values) -> (parameter, reason) or None.

def _band_filter_order(values):
    if values.get("filter_type") not in BAND_FILTERS:
        return None
    w1, w2 = values.get("w1"), values.get("w2")
    if w2 is None:
        return ("w2", f"required for {values['filter_type']} filters")
    if w1 >= w2:
        return ("w1", "W1 must be less than W2")
    return None


def _integration_window(values):
    if values.get("function") != "INTG":
        return None
    if values["start"] >= values["end"]:
        return ("start", "start must be less than end")
    return None


@dataclass(frozen=True)
class ParamSpec:
    """
    One parameter slot of an operation.

    A parameter with a default is filled in when omitted; an optional one
    without a default drops every template that references it.
    """

    name: str
    kind: ParamKind
    choices: Tuple[Any, ...] = ()
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    default: Any = None
    optional: bool = False
    check: Optional[Callable] = None

    def normalize(self, value, context=EMPTY_CONTEXT, values=None):
        """
        Convert a user value into its canonical Python form.

        Returns:
            str for ENUM, float for BOUNDED/NUMERIC, bool for BOOL, int for CHANNEL

        Raises:
            ValueError: With a human-readable reason
        """
        values = values or {}
        if self.kind is ParamKind.ENUM:
            canonical = _match_choice(value, self.choices)
            if canonical is None:
                raise ValueError(f"must be one of {list(self.choices)}, got {value!r}")
            return canonical

        if self.kind is ParamKind.BOOL:
            return parse_bool(value)

        if self.kind is ParamKind.CHANNEL:
            try:
                number = parse_number(value)
            except ValueError:
                raise ValueError(f"channel must be a number, got {value!r}")
            if not number.is_integer() or not self.minimum <= number <= self.maximum:
                raise ValueError(
                    f"channel must be {int(self.minimum)}-{int(self.maximum)}, got {value!r}"
                )
            return int(number)

        number = parse_number(value)
        if self.choices and not any(abs(number - c) < 1e-9 * max(1.0, abs(c)) for c in self.choices):
            raise ValueError(f"must be one of {[format_number(c) for c in self.choices]}, got {value!r}")
        if self.minimum is not None and not _at_least(number, self.minimum):
            raise ValueError(f"must be >= {format_number(self.minimum)}, got {format_number(number)}")
        if self.maximum is not None and not _at_most(number, self.maximum):
            raise ValueError(f"must be <= {format_number(self.maximum)}, got {format_number(number)}")
        if self.check is not None:
            reason = self.check(number, context, values)
            if reason:
                raise ValueError(reason)
        return number

    def render(self, value):
        """Render a normalized value as SCPI text."""
        if self.kind is ParamKind.BOOL:
            return format_bool(value)
        if self.kind in (ParamKind.BOUNDED, ParamKind.NUMERIC):
            return format_number(value)
        return str(value)


@dataclass(frozen=True)
class OperationSpec:
    """Parameters, command templates (in transmission order) and pacing of one operation."""

    operation: Operation
    params: Tuple[ParamSpec, ...]
    templates: Tuple[str, ...] = ()
    step_delay: float = 0.0
    cross_checks: Tuple[Callable, ...] = ()
    composite: bool = False
    description: str = ""

    def param(self, name):
        for spec in self.params:
            if spec.name == name:
                return spec
        return None

    @property
    def param_names(self):
        return tuple(spec.name for spec in self.params)


# Query forms of the settings the catalog can write
_QUERIES = {
    "channel_display": ":CHANnel{channel}:DISPlay?",
    "channel_probe": ":CHANnel{channel}:PROBe?",
    "channel_scale": ":CHANnel{channel}:SCALe?",
    "channel_offset": ":CHANnel{channel}:OFFSet?",
    "channel_coupling": ":CHANnel{channel}:COUPling?",
    "channel_bwlimit": ":CHANnel{channel}:BWLimit?",
    "channel_invert": ":CHANnel{channel}:INVert?",
    "channel_units": ":CHANnel{channel}:UNITs?",
    "math_display": ":MATH:DISPlay?",
    "math_operator": ":MATH:OPERator?",
    "math_source1": ":MATH:SOURce1?",
    "math_source2": ":MATH:SOURce2?",
    "math_scale": ":MATH:SCALe?",
    "math_offset": ":MATH:OFFSet?",
    "math_invert": ":MATH:INVert?",
    "fft_source": ":MATH:FFT:SOURce?",
    "fft_window": ":MATH:FFT:WINDow?",
    "fft_split": ":MATH:FFT:SPLit?",
    "fft_unit": ":MATH:FFT:UNIT?",
    "filter_type": ":MATH:FILTer:TYPE?",
    "filter_w1": ":MATH:FILTer:W1?",
    "filter_w2": ":MATH:FILTer:W2?",
    "option_start": ":MATH:OPTion:STARt?",
    "option_end": ":MATH:OPTion:END?",
    "option_fx_operator": ":MATH:OPTion:FX:OPERator?",
    "timebase_scale": ":TIMebase:MAIN:SCALe?",
    "timebase_offset": ":TIMebase:MAIN:OFFSet?",
    "timebase_mode": ":TIMebase:MODE?",
    "timebase_delay_enable": ":TIMebase:DELay:ENABle?",
    "timebase_delay_scale": ":TIMebase:DELay:SCALe?",
    "timebase_delay_offset": ":TIMebase:DELay:OFFSet?",
    "trigger_mode": ":TRIGger:MODE?",
    "trigger_sweep": ":TRIGger:SWEep?",
    "trigger_coupling": ":TRIGger:COUPling?",
    "trigger_holdoff": ":TRIGger:HOLDoff?",
    "trigger_nreject": ":TRIGger:NREJect?",
    "trigger_source": ":TRIGger:EDGe:SOURce?",
    "trigger_slope": ":TRIGger:EDGe:SLOPe?",
    "trigger_level": ":TRIGger:EDGe:LEVel?",
    "trigger_status": ":TRIGger:STATus?",
    "measure_source": ":MEASure:SOURce?",
    "measure_item": ":MEASure:ITEM? {item},{source}",
    "measure_statistic_display": ":MEASure:STATistic:DISPlay?",
    "measure_statistic_mode": ":MEASure:STATistic:MODE?",
}


class Catalog:
    """
    Read-only table of operation specs and query forms.

    Args:
        specs: Iterable of OperationSpec
        queries: Mapping of query name -> template
        channel_count: Number of analog channels on the instrument
    """

    def __init__(self, specs, queries, channel_count):
        self._specs = MappingProxyType({spec.operation: spec for spec in specs})
        self._queries = MappingProxyType(dict(queries))
        self._by_name = {op.value.lower(): op for op in self._specs}
        self._by_name.update({op.name.lower(): op for op in self._specs})
        self.channel_count = channel_count

    def __repr__(self):
        return f"Catalog(channels={self.channel_count}, operations={len(self._specs)})"

    @property
    def sources(self):
        return tuple(f"CHANnel{n}" for n in range(1, self.channel_count + 1)) + ("MATH",)

    def resolve(self, operation):
        """Map an Operation, its value ('SetVerticalScale') or its name to an Operation."""
        if isinstance(operation, Operation) and operation in self._specs:
            return operation
        key = str(operation).strip().lower()
        if key in self._by_name:
            return self._by_name[key]
        raise UnknownOperation(operation)

    def get_spec(self, operation):
        """
        Look up the spec of an operation.

        Raises:
            UnknownOperation: If the operation is not registered
        """
        return self._specs[self.resolve(operation)]

    def operations(self):
        return tuple(self._specs)

    def is_valid(self, operation, param_name, value, context=None, values=None):
        """
        Check a single parameter value without building anything.

        Args:
            operation: Operation or its name
            param_name: Parameter to check
            value: Candidate value
            context: Optional InstrumentContext
            values: Optional other parameters (e.g. filter_type for w1)

        Returns:
            bool
        """
        spec = self.get_spec(operation)
        param = spec.param(param_name)
        if param is None:
            return False
        context = context or EMPTY_CONTEXT
        # Unset parameters take their defaults, as they do when building.
        supplied = dict(values or {})
        others = {}
        for other in spec.params:
            if other.name == param_name:
                continue
            raw = supplied.get(other.name)
            if raw is None:
                raw = other.default
            if raw is None:
                continue
            try:
                others[other.name] = other.normalize(raw, context)
            except ValueError:
                continue
        try:
            param.normalize(value, context, others)
        except ValueError:
            return False
        return True

    def filter_frequency_range(self, timebase_seconds, filter_type):
        return filter_frequency_range(timebase_seconds, filter_type)

    def query_command(self, name, **fields):
        """
        Render the query form of a setting, e.g. query_command('channel_scale', channel=2).

        Raises:
            UnknownOperation: If no such query exists
            ValidationError: If a channel number, measurement item or source is invalid
        """
        try:
            template = self._queries[name]
        except KeyError:
            raise UnknownOperation(name)
        if "{channel}" in template:
            channel = fields.setdefault("channel", 1)
            if channel not in range(1, self.channel_count + 1):
                raise ValidationError(name, "channel", f"channel must be 1-{self.channel_count}, got {channel!r}")
        if "{item}" in template:
            item = _match_choice(fields.get("item"), MEASURE_ITEMS)
            if item is None:
                raise ValidationError(name, "item", f"must be one of {list(MEASURE_ITEMS)}, got {fields.get('item')!r}")
            fields["item"] = item
        if "{source}" in template:
            source = _match_choice(fields.get("source", "CHANnel1"), self.sources)
            if source is None:
                raise ValidationError(name, "source", f"must be one of {list(self.sources)}, got {fields.get('source')!r}")
            fields["source"] = source
        return template.format(**fields)

    def queries(self):
        return tuple(self._queries)


def build_catalog(channel_count=4):
    """
    Build the operation table for an instrument with `channel_count` analog inputs.

    DS1000Z-E models have 2 channels, DS1000Z models have 4.
    """
    if channel_count < 1:
        raise ValueError(f"channel_count must be >= 1, got {channel_count}")

    sources = tuple(f"CHANnel{n}" for n in range(1, channel_count + 1)) + ("MATH",)
    channel = ParamSpec("channel", ParamKind.CHANNEL, minimum=1, maximum=channel_count, default=1)
    enabled = ParamSpec("enabled", ParamKind.BOOL)

    specs = [
        OperationSpec(
            Operation.SET_CHANNEL_DISPLAY,
            (channel, enabled),
            (":CHANnel{channel}:DISPlay {enabled}",),
            description="Show or hide an analog channel",
        ),
        OperationSpec(
            Operation.SET_PROBE_RATIO,
            (channel, ParamSpec("ratio", ParamKind.BOUNDED, choices=PROBE_RATIOS)),
            (":CHANnel{channel}:PROBe {ratio}",),
            description="Set probe attenuation ratio",
        ),
        OperationSpec(
            Operation.SET_VERTICAL_SCALE,
            (channel, ParamSpec("scale", ParamKind.BOUNDED, check=_vertical_scale)),
            (":CHANnel{channel}:SCALe {scale}",),
            description="Set vertical scale in V/div",
        ),
        OperationSpec(
            Operation.SET_VERTICAL_OFFSET,
            (channel, ParamSpec("offset", ParamKind.NUMERIC, check=_vertical_offset)),
            (":CHANnel{channel}:OFFSet {offset}",),
            description="Set vertical offset in volts",
        ),
        OperationSpec(
            Operation.SET_COUPLING,
            (channel, ParamSpec("coupling", ParamKind.ENUM, choices=COUPLINGS)),
            (":CHANnel{channel}:COUPling {coupling}",),
            description="Set input coupling",
        ),
        OperationSpec(
            Operation.SET_BANDWIDTH_LIMIT,
            (channel, ParamSpec("limit", ParamKind.ENUM, choices=BANDWIDTH_LIMITS)),
            (":CHANnel{channel}:BWLimit {limit}",),
            description="Enable the 20 MHz bandwidth limit",
        ),
        OperationSpec(
            Operation.SET_CHANNEL_INVERT,
            (channel, enabled),
            (":CHANnel{channel}:INVert {enabled}",),
            description="Invert a channel waveform",
        ),
        OperationSpec(
            Operation.SET_CHANNEL_UNITS,
            (channel, ParamSpec("units", ParamKind.ENUM, choices=CHANNEL_UNITS)),
            (":CHANnel{channel}:UNITs {units}",),
            description="Set the amplitude unit shown for a channel",
        ),
        OperationSpec(
            Operation.SET_MATH_DISPLAY,
            (enabled,),
            (":MATH:DISPlay {enabled}",),
            description="Show or hide the MATH waveform",
        ),
        OperationSpec(
            Operation.SET_MATH_OPERATOR,
            (ParamSpec("operator", ParamKind.ENUM, choices=OPERATORS),),
            (":MATH:OPERator {operator}",),
            description="Select the basic math operator",
        ),
        OperationSpec(
            Operation.APPLY_BASIC_OPERATION,
            (
                ParamSpec("source1", ParamKind.ENUM, choices=sources, default="CHANnel1"),
                ParamSpec("source2", ParamKind.ENUM, choices=sources, default="CHANnel2"),
                ParamSpec("operator", ParamKind.ENUM, choices=OPERATORS, default="ADD"),
            ),
            (
                ":MATH:DISPlay ON",
                ":MATH:SOURce1 {source1}",
                ":MATH:SOURce2 {source2}",
                ":MATH:OPERator {operator}",
            ),
            step_delay=COMMAND_DELAY,
            description="Combine two sources with ADD/SUBtract/MULtiply/DIVide",
        ),
        OperationSpec(
            Operation.APPLY_FFT,
            (
                ParamSpec("source", ParamKind.ENUM, choices=sources, default="CHANnel1"),
                ParamSpec("window", ParamKind.ENUM, choices=FFT_WINDOWS, default="HANNing"),
                ParamSpec("split", ParamKind.ENUM, choices=FFT_SPLIT_MODES, default="FULL"),
                ParamSpec("unit", ParamKind.ENUM, choices=FFT_UNITS, default="VRMS"),
            ),
            (
                ":MATH:DISPlay ON",
                ":MATH:FFT:SOURce {source}",
                ":MATH:FFT:WINDow {window}",
                ":MATH:FFT:SPLit {split}",
                ":MATH:FFT:UNIT {unit}",
            ),
            step_delay=COMMAND_DELAY,
            description="Configure FFT analysis",
        ),
        OperationSpec(
            Operation.SET_FFT_HORIZONTAL_SCALE,
            (ParamSpec("scale", ParamKind.BOUNDED, check=_positive),),
            (":MATH:FFT:HSCale {scale}",),
            description="Set FFT horizontal scale",
        ),
        OperationSpec(
            Operation.SET_FFT_CENTER_FREQUENCY,
            (ParamSpec("frequency", ParamKind.BOUNDED, check=_positive),),
            (":MATH:FFT:HCENter {frequency}",),
            description="Set FFT centre frequency in Hz",
        ),
        OperationSpec(
            Operation.SET_DIGITAL_FILTER,
            (
                ParamSpec("filter_type", ParamKind.ENUM, choices=FILTER_TYPES, default=LOW_PASS),
                ParamSpec("w1", ParamKind.NUMERIC, check=_filter_w1),
                ParamSpec("w2", ParamKind.NUMERIC, optional=True, check=_filter_w2),
            ),
            (
                ":MATH:DISPlay ON",
                ":MATH:FILTer:TYPE {filter_type}",
                ":MATH:FILTer:W1 {w1}",
                ":MATH:FILTer:W2 {w2}",
            ),
            step_delay=COMMAND_DELAY,
            cross_checks=(_band_filter_order,),
            description="Configure the MATH digital filter",
        ),
        OperationSpec(
            Operation.SET_ADVANCED_MATH,
            (
                ParamSpec("function", ParamKind.ENUM, choices=ADVANCED_FUNCTIONS, default="INTG"),
                ParamSpec("start", ParamKind.NUMERIC, default=0.0),
                ParamSpec("end", ParamKind.NUMERIC, default=100.0),
            ),
            (
                ":MATH:DISPlay ON",
                ":MATH:OPTion:FX:OPERator {function}",
                ":MATH:OPTion:STARt {start}",
                ":MATH:OPTion:END {end}",
            ),
            step_delay=COMMAND_DELAY,
            cross_checks=(_integration_window,),
            description="Configure integration/derivative/etc. over a window",
        ),
        OperationSpec(
            Operation.SET_MATH_DISPLAY_CONTROL,
            (
                ParamSpec("enabled", ParamKind.BOOL, default=True),
                ParamSpec("invert", ParamKind.BOOL, default=False),
                ParamSpec("scale", ParamKind.BOUNDED, default=1.0, check=_positive),
                ParamSpec("offset", ParamKind.NUMERIC, default=0.0),
            ),
            (
                ":MATH:DISPlay {enabled}",
                ":MATH:INVert {invert}",
                ":MATH:SCALe {scale}",
                ":MATH:OFFSet {offset}",
            ),
            step_delay=COMMAND_DELAY,
            description="Set MATH display, inversion, scale and offset",
        ),
        OperationSpec(
            Operation.SET_TIMEBASE_SCALE,
            (ParamSpec("scale", ParamKind.BOUNDED, minimum=TIMEBASE_MIN, maximum=TIMEBASE_MAX),),
            (":TIMebase:MAIN:SCALe {scale}",),
            description="Set main timebase in s/div",
        ),
        OperationSpec(
            Operation.SET_TIMEBASE_OFFSET,
            (ParamSpec("offset", ParamKind.NUMERIC),),
            (":TIMebase:MAIN:OFFSet {offset}",),
            description="Set main timebase offset in seconds",
        ),
        OperationSpec(
            Operation.SET_TIMEBASE_MODE,
            (ParamSpec("mode", ParamKind.ENUM, choices=TIMEBASE_MODES),),
            (":TIMebase:MODE {mode}",),
            description="Select MAIN, XY or ROLL horizontal mode",
        ),
        OperationSpec(
            Operation.SET_DELAYED_TIMEBASE,
            (
                enabled,
                ParamSpec("scale", ParamKind.BOUNDED, optional=True, check=_delayed_scale),
                ParamSpec("offset", ParamKind.NUMERIC, optional=True),
            ),
            (
                ":TIMebase:DELay:ENABle {enabled}",
                ":TIMebase:DELay:SCALe {scale}",
                ":TIMebase:DELay:OFFSet {offset}",
            ),
            step_delay=COMMAND_DELAY,
            description="Enable the zoomed (delayed) timebase and set its scale/offset",
        ),
        OperationSpec(
            Operation.SET_TRIGGER_MODE,
            (ParamSpec("mode", ParamKind.ENUM, choices=TRIGGER_MODES),),
            (":TRIGger:MODE {mode}",),
            description="Select the trigger type",
        ),
        OperationSpec(
            Operation.SET_TRIGGER_SWEEP,
            (ParamSpec("sweep", ParamKind.ENUM, choices=TRIGGER_SWEEPS),),
            (":TRIGger:SWEep {sweep}",),
            description="Set AUTO, NORMal or SINGle sweep",
        ),
        OperationSpec(
            Operation.SET_TRIGGER_COUPLING,
            (ParamSpec("coupling", ParamKind.ENUM, choices=TRIGGER_COUPLINGS),),
            (":TRIGger:COUPling {coupling}",),
            description="Set trigger coupling",
        ),
        OperationSpec(
            Operation.SET_TRIGGER_HOLDOFF,
            (ParamSpec("holdoff", ParamKind.BOUNDED, minimum=HOLDOFF_MIN, maximum=HOLDOFF_MAX),),
            (":TRIGger:HOLDoff {holdoff}",),
            description="Set trigger holdoff in seconds",
        ),
        OperationSpec(
            Operation.SET_TRIGGER_NOISE_REJECT,
            (enabled,),
            (":TRIGger:NREJect {enabled}",),
            description="Enable trigger noise rejection",
        ),
        OperationSpec(
            Operation.SET_TRIGGER_LEVEL,
            (ParamSpec("level", ParamKind.NUMERIC, check=_trigger_level),),
            (":TRIGger:EDGe:LEVel {level}",),
            description="Set the edge trigger level in volts",
        ),
        OperationSpec(
            Operation.CONFIGURE_EDGE_TRIGGER,
            (
                ParamSpec("source", ParamKind.ENUM, choices=sources[:-1] + TRIGGER_EXTRA_SOURCES, default="CHANnel1"),
                ParamSpec("slope", ParamKind.ENUM, choices=TRIGGER_SLOPES, default="POSitive"),
                ParamSpec("level", ParamKind.NUMERIC, default=0.0, check=_trigger_level),
            ),
            (
                ":TRIGger:MODE EDGe",
                ":TRIGger:EDGe:SOURce {source}",
                ":TRIGger:EDGe:SLOPe {slope}",
                ":TRIGger:EDGe:LEVel {level}",
            ),
            step_delay=COMMAND_DELAY,
            description="Configure an edge trigger (source, slope, level)",
        ),
        OperationSpec(
            Operation.SET_MEASURE_SOURCE,
            (ParamSpec("source", ParamKind.ENUM, choices=sources),),
            (":MEASure:SOURce {source}",),
            description="Set the default measurement source",
        ),
        OperationSpec(
            Operation.ADD_MEASUREMENT,
            (
                ParamSpec("item", ParamKind.ENUM, choices=MEASURE_ITEMS),
                ParamSpec("source", ParamKind.ENUM, choices=sources, default="CHANnel1"),
            ),
            (":MEASure:ITEM {item},{source}",),
            description="Show an automatic measurement on screen",
        ),
        OperationSpec(
            Operation.CLEAR_MEASUREMENT,
            (ParamSpec("item", ParamKind.ENUM, choices=MEASURE_SLOTS, default="ALL"),),
            (":MEASure:CLEar {item}",),
            description="Remove one measurement slot (ITEM1-ITEM5) or ALL",
        ),
        OperationSpec(
            Operation.SET_MEASURE_STATISTICS,
            (
                enabled,
                ParamSpec("mode", ParamKind.ENUM, choices=STATISTIC_MODES, optional=True),
            ),
            (
                ":MEASure:STATistic:DISPlay {enabled}",
                ":MEASure:STATistic:MODE {mode}",
            ),
            step_delay=COMMAND_DELAY,
            description="Show measurement statistics (DIFFerence or EXTRemum)",
        ),
        OperationSpec(
            Operation.SWITCH_MATH_MODE,
            (
                ParamSpec("target", ParamKind.ENUM, choices=MATH_MODES),
                ParamSpec("current", ParamKind.ENUM, choices=MATH_MODES, default=MathMode.BASIC_OPERATIONS.value),
                ParamSpec("reset", ParamKind.BOOL, default=False),
            ),
            composite=True,
            description="Switch the active MATH function family",
        ),
    ]
    return Catalog(specs, _QUERIES, channel_count)


DEFAULT_CATALOG = build_catalog()
