"""In-memory model of a decoded pprof profile."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ValueType:
    """A sample value axis: indices into the string table for type and unit."""

    type: int = 0
    unit: int = 0


@dataclass(frozen=True)
class Line:
    """A source line attributed to a location."""

    function_id: int = 0
    line: int = 0
    column: int = 0


@dataclass
class Location:
    """A program location, possibly expanded into several inlined lines."""

    id: int = 0
    mapping_id: int = 0
    address: int = 0
    line: list[Line] = field(default_factory=list)
    is_folded: bool = False


@dataclass(frozen=True)
class Function:
    """A function, with names and file given as string-table indices."""

    id: int = 0
    name: int = 0
    system_name: int = 0
    filename: int = 0
    start_line: int = 0


@dataclass
class Sample:
    """One sample: a stack of location ids (leaf first) and its values."""

    location_id: list[int] = field(default_factory=list)
    value: list[int] = field(default_factory=list)
    label: list[object] = field(default_factory=list)


@dataclass
class Profile:
    """A decoded pprof profile."""

    sample_type: list[ValueType] = field(default_factory=list)
    sample: list[Sample] = field(default_factory=list)
    mapping: list[object] = field(default_factory=list)
    location: list[Location] = field(default_factory=list)
    function: list[Function] = field(default_factory=list)
    string_table: list[str] = field(default_factory=list)
    drop_frames: int = 0
    keep_frames: int = 0
    time_nanos: int = 0
    duration_nanos: int = 0
    period_type: ValueType | None = None
    period: int = 0
    comment: list[int] = field(default_factory=list)
    default_sample_type: int = 0
    doc_url: int = 0

    def string_at(self, idx: int) -> str:
        """Return the string-table entry at ``idx``, or "" if it is absent."""
        if 0 <= idx < len(self.string_table):
            return self.string_table[idx]
        return ""

    def location_map(self) -> dict[int, Location]:
        """Map location ids to locations."""
        return {loc.id: loc for loc in self.location}

    def function_map(self) -> dict[int, Function]:
        """Map function ids to functions."""
        return {func.id: func for func in self.function}