# pprof-trace

Turn a pprof CPU profile into Chrome trace-event JSON. The output holds
V8 `Profile` and `ProfileChunk` events, so the Chrome DevTools Performance
panel and Perfetto can open it.

## Installation

```
pip install .
```

## Usage

Build a `Profile` from the `pprof_trace.profile` module and pass it to
`convert_profile` from `pprof_trace.chrome_trace`:

```python
from pprof_trace.profile import Profile, ValueType, Sample, Location, Line, Function
from pprof_trace.chrome_trace import convert_profile, ConvertOptions

profile = Profile(
    string_table=["", "cpu", "nanoseconds", "main", "main.js"],
    sample_type=[ValueType(type=1, unit=2)],
    sample=[Sample(location_id=[1], value=[2_000_000])],
    location=[Location(id=1, line=[Line(function_id=1, line=3)])],
    function=[Function(id=1, name=3, filename=4)],
)

trace = convert_profile(profile, ConvertOptions())
print(trace.stats)          # Stats(nodes=2, samples=1, total_delta_us=2000)
with open("trace.json", "w", encoding="utf-8") as out:
    out.write(trace.json)
```

`convert_profile` returns an `EncodedTrace` with the pretty-printed JSON in
`json` and a `Stats` record in `stats`: the number of V8 profile nodes
(including the `(root)` node), the number of samples written, and the sum
of the time deltas in microseconds. The options argument may be left out,
in which case the defaults below apply.

### The profile model

`pprof_trace.profile` holds plain dataclasses mirroring the pprof message
layout: `Profile`, `ValueType`, `Sample`, `Location`, `Line` and
`Function`. Names, file names, types and units are indices into
`Profile.string_table`. `Profile.string_at(idx)` returns the string at an
index, or `""` when the index is out of range; `Profile.location_map()` and
`Profile.function_map()` map ids to locations and functions.

### Options

`ConvertOptions` takes these fields:

- `value_index`: the sample value axis that gives elapsed time. If you leave
  it out, the first `cpu` or `wall` axis with a time unit (`nanoseconds`,
  `microseconds`, `milliseconds` or `seconds`) is used.
- `count_index`: the sample value axis that gives the sample count. If you
  leave it out, the first `samples`/`count` axis is used.
- `expand_samples`: write each pprof sample once per count, splitting its
  time evenly, so that converting the trace back to pprof keeps the sample
  counts. The JSON gets larger.
- `pid`, `tid`, `profile_id`: the synthetic process id, thread id and V8
  profile id written into the trace. They default to `1`, `1` and `"0x1"`.

Samples whose value on the chosen axis is zero or negative, or whose stack
is empty, are skipped.

### Errors

`convert_profile` raises `ConversionError` (a `ValueError`) when
`value_index` is out of range, when no `cpu`/`wall` time axis is found and
no `value_index` was given, when the profile has no positive samples on the
chosen axis, or when expanding the samples would write more than 10,000,000
of them.

## What it does not do

The package works on `Profile` objects in memory. It does not read or write
pprof files (gzip'd protobuf) itself, and it has no command-line program:
decode the profile with your own tooling, build a `Profile`, and write the
returned JSON where you need it.