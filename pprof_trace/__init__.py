"""Convert in-memory pprof CPU profiles into Chrome trace-event JSON."""

__version__ = "0.1.2"
__all__ = ["profile", "chrome_trace"]