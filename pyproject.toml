[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pprof-trace"
version = "0.1.2"
description = "Convert pprof CPU profiles into synthetic Chrome trace-event JSON with V8 Profile/ProfileChunk events."
requires-python = ">=3.10"
dependencies = []
keywords = ["profiling", "pprof", "chrome-trace", "trace-event", "v8"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Debuggers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pprof_trace"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
