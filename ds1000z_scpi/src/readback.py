"""
Read current instrument settings through a SessionSequencer.

Each field is queried on its own. A field whose query fails or does not
parse keeps its last-known value, and the failed QueryResult is reported in
Readback.failures so the caller can tell a stale value from a fresh one.
"""

import logging
from dataclasses import dataclass, fields, replace
from typing import Optional, Tuple

from .catalog import InstrumentContext
from .formatting import parse_bool, parse_number

logger = logging.getLogger(__name__)

# The scope answers 9.9E37 for a measurement it cannot take
INVALID_MEASUREMENT = 9.9e37


def _text(response):
    return response.strip()


@dataclass(frozen=True)
class ChannelSettings:
    channel: int = 1
    display: Optional[bool] = None
    probe: Optional[float] = None
    scale: Optional[float] = None
    offset: Optional[float] = None
    coupling: Optional[str] = None
    bwlimit: Optional[str] = None
    invert: Optional[bool] = None
    units: Optional[str] = None


@dataclass(frozen=True)
class MathSettings:
    display: Optional[bool] = None
    operator: Optional[str] = None
    source1: Optional[str] = None
    source2: Optional[str] = None
    scale: Optional[float] = None
    offset: Optional[float] = None
    invert: Optional[bool] = None


@dataclass(frozen=True)
class TimebaseSettings:
    scale: Optional[float] = None
    offset: Optional[float] = None
    mode: Optional[str] = None
    delay_enabled: Optional[bool] = None
    delay_scale: Optional[float] = None
    delay_offset: Optional[float] = None


@dataclass(frozen=True)
class TriggerSettings:
    mode: Optional[str] = None
    sweep: Optional[str] = None
    coupling: Optional[str] = None
    holdoff: Optional[float] = None
    noise_reject: Optional[bool] = None
    source: Optional[str] = None
    slope: Optional[str] = None
    level: Optional[float] = None
    status: Optional[str] = None


@dataclass(frozen=True)
class Readback:
    """
    Settings read from the instrument.

    Attributes:
        settings: Channel, Math, Timebase or TriggerSettings
        failures: QueryResult of every field that kept its previous value
    """

    settings: object
    failures: Tuple = ()

    @property
    def ok(self):
        return not self.failures


# field -> (query name, parser)
_CHANNEL_FIELDS = {
    "display": ("channel_display", parse_bool),
    "probe": ("channel_probe", parse_number),
    "scale": ("channel_scale", parse_number),
    "offset": ("channel_offset", parse_number),
    "coupling": ("channel_coupling", _text),
    "bwlimit": ("channel_bwlimit", _text),
    "invert": ("channel_invert", parse_bool),
    "units": ("channel_units", _text),
}

_MATH_FIELDS = {
    "display": ("math_display", parse_bool),
    "operator": ("math_operator", _text),
    "source1": ("math_source1", _text),
    "source2": ("math_source2", _text),
    "scale": ("math_scale", parse_number),
    "offset": ("math_offset", parse_number),
    "invert": ("math_invert", parse_bool),
}

_TIMEBASE_FIELDS = {
    "scale": ("timebase_scale", parse_number),
    "offset": ("timebase_offset", parse_number),
    "mode": ("timebase_mode", _text),
    "delay_enabled": ("timebase_delay_enable", parse_bool),
    "delay_scale": ("timebase_delay_scale", parse_number),
    "delay_offset": ("timebase_delay_offset", parse_number),
}

_TRIGGER_FIELDS = {
    "mode": ("trigger_mode", _text),
    "sweep": ("trigger_sweep", _text),
    "coupling": ("trigger_coupling", _text),
    "holdoff": ("trigger_holdoff", parse_number),
    "noise_reject": ("trigger_nreject", parse_bool),
    "source": ("trigger_source", _text),
    "slope": ("trigger_slope", _text),
    "level": ("trigger_level", parse_number),
    "status": ("trigger_status", _text),
}


def _read(sequencer, previous, table, **query_fields):
    updates = {}
    failures = []
    for name, (query_name, parser) in table.items():
        command = sequencer.catalog.query_command(query_name, **query_fields)
        result = sequencer.query(command, parser)
        if result.ok:
            updates[name] = result.value
        else:
            failures.append(result)
    if failures:
        logger.warning(
            "Readback of %s kept %d stale field(s): %s",
            type(previous).__name__,
            len(failures),
            ", ".join(f.command for f in failures),
        )
    return Readback(replace(previous, **updates), tuple(failures))


def read_channel(sequencer, channel: int = 1, last_known: Optional[ChannelSettings] = None) -> Readback:
    """
    Query every setting of one analog channel.

    Args:
        sequencer: SessionSequencer to query through
        channel: Channel number (1..channel_count)
        last_known: ChannelSettings to fall back on per field

    Returns:
        Readback wrapping ChannelSettings
    """
    previous = last_known or ChannelSettings(channel=channel)
    if previous.channel != channel:
        previous = replace(previous, channel=channel)
    return _read(sequencer, previous, _CHANNEL_FIELDS, channel=channel)


def read_math(sequencer, last_known: Optional[MathSettings] = None) -> Readback:
    """Query the MATH display, operator, sources, scale, offset and inversion."""
    return _read(sequencer, last_known or MathSettings(), _MATH_FIELDS)


def read_timebase(sequencer, last_known: Optional[TimebaseSettings] = None) -> Readback:
    return _read(sequencer, last_known or TimebaseSettings(), _TIMEBASE_FIELDS)


def read_trigger(sequencer, last_known: Optional[TriggerSettings] = None) -> Readback:
    """Query the trigger type, sweep, coupling, holdoff, edge settings and run status."""
    return _read(sequencer, last_known or TriggerSettings(), _TRIGGER_FIELDS)


def measure(sequencer, item: str, source: str = "CHANnel1"):
    """
    Take one automatic measurement, e.g. measure(seq, 'VPP', 'CHANnel1').

    Returns:
        QueryResult. A reading the scope could not take (9.9E37) comes back
        as a failed result.

    Raises:
        ValidationError: If the item or source is unknown
    """
    command = sequencer.catalog.query_command("measure_item", item=item, source=source)
    result = sequencer.query(command, parse_number)
    if result.ok and abs(result.value) >= INVALID_MEASUREMENT:
        logger.warning("Measurement %s returned no valid reading", command)
        return replace(result, value=None, error="measurement not available")
    return result


def context_from(timebase=None, channel=None) -> InstrumentContext:
    """Build an InstrumentContext from readback settings (either may be None)."""
    return InstrumentContext(
        timebase=timebase.scale if timebase is not None else None,
        probe_ratio=channel.probe if channel is not None else None,
        vertical_scale=channel.scale if channel is not None else None,
        vertical_offset=channel.offset if channel is not None else None,
    )


def settings_dict(settings):
    """Plain dict of a settings dataclass, for printing."""
    return {f.name: getattr(settings, f.name) for f in fields(settings)}
