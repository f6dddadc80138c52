"""Process memory introspection."""
import resource
import sys


def peak_memory_mb() -> int:
    """Peak resident set size of this process in MB."""
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # macOS reports bytes, Linux reports kilobytes
    if sys.platform == "darwin":
        return round(peak / 1024 / 1024)
    return round(peak / 1024)
