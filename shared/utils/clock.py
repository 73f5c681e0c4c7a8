import time


def current_time_ms() -> int:
    """Wall clock time in milliseconds since the epoch"""
    return int(time.time() * 1000)
