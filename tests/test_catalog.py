import pytest

from ds1000z_scpi.src.catalog import (
    DEFAULT_CATALOG,
    InstrumentContext,
    Operation,
    build_catalog,
    filter_frequency_range,
)
from ds1000z_scpi.src.errors import InvalidTimebase, UnknownFilterType, UnknownOperation, ValidationError


def test_every_operation_has_a_parameter():
    for operation in DEFAULT_CATALOG.operations():
        assert DEFAULT_CATALOG.get_spec(operation).params


def test_get_spec_accepts_enum_value_and_name():
    by_enum = DEFAULT_CATALOG.get_spec(Operation.APPLY_FFT)
    assert DEFAULT_CATALOG.get_spec("ApplyFFT") is by_enum
    assert DEFAULT_CATALOG.get_spec("applyfft") is by_enum
    assert DEFAULT_CATALOG.get_spec("APPLY_FFT") is by_enum


def test_unknown_operation():
    with pytest.raises(UnknownOperation):
        DEFAULT_CATALOG.get_spec("AutoScale")


def test_unknown_operation_is_a_key_error():
    with pytest.raises(KeyError):
        DEFAULT_CATALOG.get_spec("Nope")


def test_sources_follow_channel_count():
    assert build_catalog(2).sources == ("CHANnel1", "CHANnel2", "MATH")
    assert DEFAULT_CATALOG.sources[-2:] == ("CHANnel4", "MATH")


def test_build_catalog_rejects_zero_channels():
    with pytest.raises(ValueError):
        build_catalog(0)


def test_is_valid_enumeration():
    assert DEFAULT_CATALOG.is_valid(Operation.APPLY_BASIC_OPERATION, "operator", "ADD")
    assert DEFAULT_CATALOG.is_valid(Operation.APPLY_BASIC_OPERATION, "operator", "subtract")
    assert not DEFAULT_CATALOG.is_valid(Operation.APPLY_BASIC_OPERATION, "operator", "MODulo")


def test_is_valid_unknown_parameter():
    assert not DEFAULT_CATALOG.is_valid(Operation.APPLY_FFT, "colour", "red")


def test_is_valid_channel_range():
    assert DEFAULT_CATALOG.is_valid(Operation.SET_COUPLING, "channel", 4)
    assert not build_catalog(2).is_valid(Operation.SET_COUPLING, "channel", 3)
    assert not DEFAULT_CATALOG.is_valid(Operation.SET_COUPLING, "channel", 1.5)


def test_is_valid_probe_ratio_set():
    assert DEFAULT_CATALOG.is_valid(Operation.SET_PROBE_RATIO, "ratio", 10)
    assert not DEFAULT_CATALOG.is_valid(Operation.SET_PROBE_RATIO, "ratio", 3)


def test_is_valid_vertical_scale_depends_on_probe():
    x1 = InstrumentContext(probe_ratio=1)
    x10 = InstrumentContext(probe_ratio=10)
    assert DEFAULT_CATALOG.is_valid(Operation.SET_VERTICAL_SCALE, "scale", 0.001, x1)
    assert not DEFAULT_CATALOG.is_valid(Operation.SET_VERTICAL_SCALE, "scale", 0.001, x10)
    assert DEFAULT_CATALOG.is_valid(Operation.SET_VERTICAL_SCALE, "scale", 100, x10)
    assert not DEFAULT_CATALOG.is_valid(Operation.SET_VERTICAL_SCALE, "scale", 0)


def test_is_valid_vertical_offset_limit():
    context = InstrumentContext(vertical_scale=0.5)
    assert DEFAULT_CATALOG.is_valid(Operation.SET_VERTICAL_OFFSET, "offset", -2.5, context)
    assert not DEFAULT_CATALOG.is_valid(Operation.SET_VERTICAL_OFFSET, "offset", 2.6, context)


def test_is_valid_filter_w1_uses_timebase():
    context = InstrumentContext(timebase=0.001)
    values = {"filter_type": "LPASs"}
    assert DEFAULT_CATALOG.is_valid(Operation.SET_DIGITAL_FILTER, "w1", 5000, context, values)
    assert not DEFAULT_CATALOG.is_valid(Operation.SET_DIGITAL_FILTER, "w1", 20000, context, values)


def test_frequency_range_at_one_millisecond():
    limits = filter_frequency_range(0.001, "LPASs")
    assert limits.minimum == pytest.approx(500)
    assert limits.maximum == pytest.approx(10000)
    assert limits.step == pytest.approx(500)


def test_frequency_range_band_filter():
    limits = filter_frequency_range(0.001, "BPASs")
    assert limits.maximum == pytest.approx(9500)
    assert limits.w2_minimum == pytest.approx(1000)
    assert limits.w2_maximum == pytest.approx(10000)


def test_frequency_range_scales_with_timebase():
    assert filter_frequency_range(0.0001, "HPASs").maximum == pytest.approx(100000)


@pytest.mark.parametrize("timebase", [0, -0.001, "abc"])
def test_frequency_range_invalid_timebase(timebase):
    with pytest.raises(InvalidTimebase) as info:
        filter_frequency_range(timebase, "LPASs")
    assert info.value.parameter == "timebase"


def test_frequency_range_unknown_filter():
    with pytest.raises(UnknownFilterType) as info:
        filter_frequency_range(0.001, "NOTCH")
    assert isinstance(info.value, ValidationError)


def test_query_command():
    assert DEFAULT_CATALOG.query_command("channel_scale", channel=2) == ":CHANnel2:SCALe?"
    assert DEFAULT_CATALOG.query_command("channel_scale") == ":CHANnel1:SCALe?"
    assert DEFAULT_CATALOG.query_command("timebase_scale") == ":TIMebase:MAIN:SCALe?"


def test_query_command_errors():
    with pytest.raises(UnknownOperation):
        DEFAULT_CATALOG.query_command("trigger_pattern")
    with pytest.raises(ValidationError):
        build_catalog(2).query_command("channel_scale", channel=4)


def test_is_valid_filter_w1_without_filter_type_uses_default():
    context = InstrumentContext(timebase=0.001)
    assert not DEFAULT_CATALOG.is_valid(Operation.SET_DIGITAL_FILTER, "w1", 50000, context)
    assert DEFAULT_CATALOG.is_valid(Operation.SET_DIGITAL_FILTER, "w1", 5000, context)


def test_is_valid_agrees_with_build(builder):
    context = InstrumentContext(timebase=0.001)
    assert not DEFAULT_CATALOG.is_valid(Operation.SET_DIGITAL_FILTER, "w1", 50000, context)
    with pytest.raises(ValidationError):
        builder.build(Operation.SET_DIGITAL_FILTER, {"w1": 50000}, context)


def test_is_valid_trigger_level_uses_default_source():
    context = InstrumentContext(vertical_scale=0.5, vertical_offset=1.0)
    assert DEFAULT_CATALOG.is_valid(Operation.CONFIGURE_EDGE_TRIGGER, "level", -2.5, context)
    assert not DEFAULT_CATALOG.is_valid(Operation.CONFIGURE_EDGE_TRIGGER, "level", 1.5, context)
    # external sources are not limited by the channel's vertical scale
    assert DEFAULT_CATALOG.is_valid(Operation.CONFIGURE_EDGE_TRIGGER, "level", 1.5, context, {"source": "EXT"})


def test_query_command_measure_item():
    assert DEFAULT_CATALOG.query_command("measure_item", item="vpp") == ":MEASure:ITEM? VPP,CHANnel1"
    assert (
        DEFAULT_CATALOG.query_command("measure_item", item="frequency", source="math")
        == ":MEASure:ITEM? FREQuency,MATH"
    )


def test_query_command_measure_item_errors():
    with pytest.raises(ValidationError) as info:
        DEFAULT_CATALOG.query_command("measure_item", item="WIDTH")
    assert info.value.parameter == "item"
    with pytest.raises(ValidationError) as info:
        build_catalog(2).query_command("measure_item", item="VPP", source="CHANnel3")
    assert info.value.parameter == "source"


def test_trigger_and_timebase_queries():
    assert DEFAULT_CATALOG.query_command("trigger_level") == ":TRIGger:EDGe:LEVel?"
    assert DEFAULT_CATALOG.query_command("trigger_status") == ":TRIGger:STATus?"
    assert DEFAULT_CATALOG.query_command("timebase_delay_scale") == ":TIMebase:DELay:SCALe?"


def test_edge_trigger_sources_exclude_math():
    spec = build_catalog(2).get_spec(Operation.CONFIGURE_EDGE_TRIGGER)
    assert spec.param("source").choices == ("CHANnel1", "CHANnel2", "EXT", "ACLine")
