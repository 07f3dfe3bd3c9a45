from __future__ import annotations

import time


def timestamp() -> str:
    """Current wall-clock time as epoch milliseconds, truncated to whole seconds."""
    return str(int(time.time()) * 1000)
