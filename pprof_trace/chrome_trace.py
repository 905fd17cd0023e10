"""Convert pprof CPU profiles into Chrome trace-event JSON with V8 profile events."""

from __future__ import annotations

import json
from dataclasses import dataclass

from pprof_trace.profile import Function, Location, Profile

_I64_MAX = 2**63 - 1
_I64_MIN = -(2**63)
_MAX_EXPANDED_SAMPLES = 10_000_000
_TIME_UNITS = frozenset({"nanoseconds", "microseconds", "milliseconds", "seconds"})
_V8_CATEGORY = "disabled-by-default-v8.cpu_profiler"


class ConversionError(ValueError):
    """Raised when a profile cannot be converted."""


@dataclass
class ConvertOptions:
    """Options for :func:`convert_profile`."""

    value_index: int | None = None
    count_index: int | None = None
    expand_samples: bool = False
    pid: int = 1
    tid: int = 1
    profile_id: str = "0x1"


@dataclass(frozen=True)
class Stats:
    """Conversion statistics."""

    nodes: int
    samples: int
    total_delta_us: int


@dataclass(frozen=True)
class EncodedTrace:
    """Chrome trace JSON together with conversion statistics."""

    json: str
    stats: Stats


@dataclass(frozen=True)
class _CallFrame:
    function_name: str
    script_id: str = "0"
    url: str = ""
    line_number: int = -1
    column_number: int = -1

    def to_json(self) -> dict:
        return {
            "columnNumber": self.column_number,
            "functionName": self.function_name,
            "lineNumber": self.line_number,
            "scriptId": self.script_id,
            "url": self.url,
        }


@dataclass
class _Node:
    id: int
    call_frame: _CallFrame
    children: list[int]

    def to_json(self) -> dict:
        out: dict = {"callFrame": self.call_frame.to_json()}
        if self.children:
            out["children"] = list(self.children)
        out["id"] = self.id
        return out


class _TreeBuilder:
    def __init__(self) -> None:
        self.nodes = [_Node(1, _CallFrame("(root)"), [])]
        self._child_by_key: dict[tuple[int, _CallFrame], int] = {}

    def intern_stack(self, frames: list[_CallFrame]) -> int:
        parent = 1
        for frame in frames:
            key = (parent, frame)
            node_id = self._child_by_key.get(key)
            if node_id is None:
                node_id = len(self.nodes) + 1
                self.nodes.append(_Node(node_id, frame, []))
                self.nodes[parent - 1].children.append(node_id)
                self._child_by_key[key] = node_id
            parent = node_id
        return parent


def _saturate(value: int) -> int:
    return max(_I64_MIN, min(_I64_MAX, value))


def _select_value_axis(profile: Profile, explicit: int | None) -> tuple[int, str]:
    if explicit is not None:
        if not 0 <= explicit < len(profile.sample_type):
            raise ConversionError(
                f"value index {explicit} out of range; "
                f"profile has {len(profile.sample_type)} sample type(s)"
            )
        return explicit, profile.string_at(profile.sample_type[explicit].unit)

    for i, st in enumerate(profile.sample_type):
        kind = profile.string_at(st.type)
        unit = profile.string_at(st.unit)
        if kind in ("cpu", "wall") and unit in _TIME_UNITS:
            return i, unit
    raise ConversionError(
        "no CPU/wall time sample_type found; pass --value-index to choose one"
    )


def _find_count_axis(profile: Profile) -> int | None:
    return next(
        (
            i
            for i, st in enumerate(profile.sample_type)
            if profile.string_at(st.type) == "samples"
            and profile.string_at(st.unit) == "count"
        ),
        None,
    )


def _value_to_us(raw: int, unit: str) -> int:
    if unit == "nanoseconds":
        us = (raw + 500) // 1000
    elif unit == "milliseconds":
        us = _saturate(raw * 1000)
    elif unit == "seconds":
        us = _saturate(raw * 1_000_000)
    else:
        us = raw
    return max(us, 1) if raw > 0 else 0


def _expanded(delta_us: int, count: int) -> list[int]:
    if count > _MAX_EXPANDED_SAMPLES:
        raise ConversionError(
            "--expand-samples would emit more than 10,000,000 samples; "
            "omit it for compact JSON"
        )
    base, remainder = divmod(delta_us, count)
    return [base + (1 if i < remainder else 0) for i in range(count)]


def _frame_for_location(
    profile: Profile,
    locs: dict[int, Location],
    funcs: dict[int, Function],
    loc_id: int,
) -> _CallFrame:
    loc = locs.get(loc_id)
    if loc is None:
        return _CallFrame(f"location:{loc_id}")
    if not loc.line:
        return _CallFrame(f"0x{loc.address:x}")
    line = loc.line[0]
    func = funcs.get(line.function_id)
    if func is None:
        return _CallFrame(f"function:{line.function_id}")
    name = profile.string_at(func.name)
    if line.line > 0:
        line_number = line.line - 1
    elif func.start_line > 0:
        line_number = func.start_line - 1
    else:
        line_number = -1
    return _CallFrame(
        function_name=name or "(unknown)",
        url=profile.string_at(func.filename),
        line_number=line_number,
        column_number=max(line.column, 0),
    )


def _metadata_event(pid: int, tid: int, ts: int, name: str, value: str) -> dict:
    return {
        "pid": pid,
        "tid": tid,
        "ts": ts,
        "ph": "M",
        "cat": "__metadata",
        "name": name,
        "args": {"name": value},
    }


def _profile_event(opts: ConvertOptions, ts: int, name: str, data: dict) -> dict:
    return {
        "pid": opts.pid,
        "tid": opts.tid,
        "ts": ts,
        "ph": "P",
        "cat": _V8_CATEGORY,
        "name": name,
        "id": opts.profile_id,
        "args": {"data": data},
    }


def convert_profile(profile: Profile, opts: ConvertOptions | None = None) -> EncodedTrace:
    """Convert a decoded pprof profile into Chrome trace JSON."""
    opts = opts if opts is not None else ConvertOptions()
    value_idx, unit = _select_value_axis(profile, opts.value_index)
    count_index = opts.count_index if opts.count_index is not None else _find_count_axis(profile)
    locs = profile.location_map()
    funcs = profile.function_map()

    start_us = profile.time_nanos // 1000 if profile.time_nanos > 0 else 0

    builder = _TreeBuilder()
    sample_node_ids: list[int] = []
    time_deltas: list[int] = []

    for sample in profile.sample:
        raw = sample.value[value_idx] if value_idx < len(sample.value) else 0
        if raw <= 0:
            continue
        delta_us = _value_to_us(raw, unit)
        frames = [
            _frame_for_location(profile, locs, funcs, loc_id)
            for loc_id in reversed(sample.location_id)
        ]
        if not frames:
            continue
        leaf = builder.intern_stack(frames)
        if opts.expand_samples:
            count = 1
            if count_index is not None and 0 <= count_index < len(sample.value):
                count = sample.value[count_index]
            deltas = _expanded(delta_us, max(count, 1))
            sample_node_ids.extend([leaf] * len(deltas))
            time_deltas.extend(deltas)
        else:
            sample_node_ids.append(leaf)
            time_deltas.append(delta_us)

    if not sample_node_ids:
        raise ConversionError(
            "pprof profile had no positive samples on selected value axis"
        )

    total_delta_us = sum(time_deltas)
    if profile.duration_nanos > 0:
        end_us = _saturate(start_us + profile.duration_nanos // 1000)
    else:
        end_us = _saturate(start_us + total_delta_us)

    nodes = builder.nodes
    stats = Stats(
        nodes=len(nodes),
        samples=len(sample_node_ids),
        total_delta_us=total_delta_us,
    )

    trace = {
        "traceEvents": [
            _metadata_event(opts.pid, opts.tid, start_us, "process_name", "pprof"),
            _metadata_event(opts.pid, opts.tid, start_us, "thread_name", "pprof"),
            _profile_event(opts, start_us, "Profile", {"startTime": start_us}),
            _profile_event(
                opts,
                start_us,
                "ProfileChunk",
                {
                    "cpuProfile": {
                        "endTime": end_us,
                        "nodes": [node.to_json() for node in nodes],
                        "startTime": start_us,
                    },
                    "samples": sample_node_ids,
                    "timeDeltas": time_deltas,
                },
            ),
        ]
    }
    return EncodedTrace(
        json=json.dumps(trace, indent=2, ensure_ascii=False),
        stats=stats,
    )