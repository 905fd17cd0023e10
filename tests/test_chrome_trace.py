import json

import pytest

from pprof_trace.chrome_trace import (
    ConversionError,
    ConvertOptions,
    EncodedTrace,
    Stats,
    convert_profile,
)
from pprof_trace.profile import (
    Function,
    Line,
    Location,
    Profile,
    Sample,
    ValueType,
)


def synthetic_pprof():
    return Profile(
        sample_type=[ValueType(type=1, unit=2), ValueType(type=3, unit=4)],
        sample=[
            Sample(location_id=[3, 2, 1], value=[3, 3_000_000]),
            Sample(location_id=[2, 1], value=[1, 500_000]),
        ],
        location=[
            Location(id=1, line=[Line(function_id=1, line=1, column=0)]),
            Location(id=2, line=[Line(function_id=2, line=5, column=0)]),
            Location(id=3, line=[Line(function_id=3, line=9, column=0)]),
        ],
        function=[
            Function(id=1, name=5, system_name=5, filename=8, start_line=1),
            Function(id=2, name=6, system_name=6, filename=8, start_line=5),
            Function(id=3, name=7, system_name=7, filename=8, start_line=9),
        ],
        string_table=[
            "",
            "samples",
            "count",
            "cpu",
            "nanoseconds",
            "root",
            "hot",
            "leaf",
            "file:///main.js",
        ],
        time_nanos=1_000_000_000,
        duration_nanos=3_500_000,
    )


def _chunk(out: EncodedTrace) -> dict:
    events = json.loads(out.json)["traceEvents"]
    return next(e for e in events if e["name"] == "ProfileChunk")


def test_emits_chrome_profile_chunk_json():
    out = convert_profile(synthetic_pprof(), ConvertOptions())
    assert out.stats == Stats(nodes=4, samples=2, total_delta_us=3_500)

    events = json.loads(out.json)["traceEvents"]
    assert any(e["name"] == "Profile" for e in events)
    chunk = _chunk(out)
    assert len(chunk["args"]["data"]["samples"]) == 2
    assert chunk["args"]["data"]["timeDeltas"] == [3000, 500]

    names = [
        n["callFrame"]["functionName"]
        for n in chunk["args"]["data"]["cpuProfile"]["nodes"]
    ]
    for expected in ("(root)", "root", "hot", "leaf"):
        assert expected in names


def test_expand_samples_preserves_counts():
    out = convert_profile(synthetic_pprof(), ConvertOptions(expand_samples=True))
    assert out.stats.samples == 4
    assert out.stats.total_delta_us == 3_500
    data = _chunk(out)["args"]["data"]
    assert data["timeDeltas"] == [1000, 1000, 1000, 500]
    assert len(data["samples"]) == 4
    assert sum(data["timeDeltas"]) == 3_500


def test_default_options_used_when_omitted():
    out = convert_profile(synthetic_pprof())
    events = json.loads(out.json)["traceEvents"]
    assert all(e["pid"] == 1 and e["tid"] == 1 for e in events)
    profile_events = [e for e in events if e["ph"] == "P"]
    assert [e["id"] for e in profile_events] == ["0x1", "0x1"]
    assert all("id" not in e for e in events if e["ph"] == "M")


def test_start_and_end_times():
    out = convert_profile(synthetic_pprof())
    cpu = _chunk(out)["args"]["data"]["cpuProfile"]
    assert cpu["startTime"] == 1_000_000
    assert cpu["endTime"] == 1_000_000 + 3_500


def test_end_time_falls_back_to_total_delta():
    profile = synthetic_pprof()
    profile.duration_nanos = 0
    profile.time_nanos = 0
    cpu = _chunk(convert_profile(profile))["args"]["data"]["cpuProfile"]
    assert cpu["startTime"] == 0
    assert cpu["endTime"] == 3_500


def test_tree_structure_and_line_numbers():
    out = convert_profile(synthetic_pprof())
    nodes = _chunk(out)["args"]["data"]["cpuProfile"]["nodes"]
    by_name = {n["callFrame"]["functionName"]: n for n in nodes}
    assert by_name["(root)"]["id"] == 1
    assert by_name["(root)"]["children"] == [by_name["root"]["id"]]
    assert by_name["root"]["children"] == [by_name["hot"]["id"]]
    assert "children" not in by_name["leaf"]
    assert by_name["hot"]["callFrame"]["lineNumber"] == 4
    assert by_name["hot"]["callFrame"]["url"] == "file:///main.js"
    samples = _chunk(out)["args"]["data"]["samples"]
    assert samples == [by_name["leaf"]["id"], by_name["hot"]["id"]]


def test_missing_time_axis_is_an_error():
    profile = synthetic_pprof()
    profile.sample_type = [ValueType(type=1, unit=2)]
    with pytest.raises(ConversionError, match="no CPU/wall time"):
        convert_profile(profile)


def test_explicit_value_index_out_of_range():
    with pytest.raises(ConversionError, match="out of range"):
        convert_profile(synthetic_pprof(), ConvertOptions(value_index=5))


def test_explicit_value_index_selects_axis():
    out = convert_profile(synthetic_pprof(), ConvertOptions(value_index=0))
    # unit "count" is not a time unit, so raw values are used as-is
    assert _chunk(out)["args"]["data"]["timeDeltas"] == [3, 1]


def test_no_positive_samples_is_an_error():
    profile = synthetic_pprof()
    for sample in profile.sample:
        sample.value[1] = 0
    with pytest.raises(ConversionError, match="no positive samples"):
        convert_profile(profile)


def test_unknown_locations_and_functions():
    profile = synthetic_pprof()
    profile.location.append(Location(id=10, address=0xABC))
    profile.location.append(Location(id=11, line=[Line(function_id=99)]))
    profile.sample = [Sample(location_id=[11, 10, 42], value=[1, 1000])]
    out = convert_profile(profile)
    names = [
        n["callFrame"]["functionName"]
        for n in _chunk(out)["args"]["data"]["cpuProfile"]["nodes"]
    ]
    assert names == ["(root)", "location:42", "0xabc", "function:99"]


def test_expand_remainder_distributed_first():
    profile = synthetic_pprof()
    profile.sample = [Sample(location_id=[1], value=[3, 10_000])]
    out = convert_profile(profile, ConvertOptions(expand_samples=True))
    assert _chunk(out)["args"]["data"]["timeDeltas"] == [4, 3, 3]


def test_expand_too_many_samples_is_an_error():
    profile = synthetic_pprof()
    profile.sample = [Sample(location_id=[1], value=[20_000_000, 1000])]
    with pytest.raises(ConversionError, match="10,000,000"):
        convert_profile(profile, ConvertOptions(expand_samples=True))


def test_tiny_nanosecond_values_round_up_to_one_us():
    profile = synthetic_pprof()
    profile.sample = [Sample(location_id=[1], value=[1, 1])]
    out = convert_profile(profile)
    assert out.stats.total_delta_us == 1