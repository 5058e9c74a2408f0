"""
SubSearch Search Result
=======================
Transient record returned by SubstringIndex.search().
Constructed fresh per call; never retained by the index.
"""

from dataclasses import dataclass, field
from typing import Any


def format_duration(seconds: float) -> str:
    """
    Render a duration rounded to milliseconds, e.g. "0s", "7ms", "1.25s",
    "2m3.5s", "1h0m0s".
    """
    ms = int(seconds * 1000 + 0.5) if seconds > 0 else 0
    if ms == 0:
        return "0s"
    if ms < 1000:
        return f"{ms}ms"

    hours, rem = divmod(ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, frac = divmod(rem, 1000)

    out = ""
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    out += str(secs)
    if frac:
        out += "." + f"{frac:03d}".rstrip("0")
    return out + "s"


@dataclass
class SearchResult:
    """
    Outcome of one search pass.

    count is the number of matches before pagination; found holds the
    sorted page [start, stop) of matching ids.
    """
    key: str
    found: list[str] = field(default_factory=list)
    count: int = 0
    start: int = 0
    stop: int = 0
    elapsed: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Caller-facing record with the wire field names."""
        return {
            "key": self.key,
            "found": list(self.found),
            "count": self.count,
            "start": self.start,
            "stop": self.stop,
            "elapsed": self.elapsed,
        }

    def __len__(self) -> int:
        return len(self.found)
