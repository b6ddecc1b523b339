"""
Utility functions for Rhythmo
"""
from typing import Iterable, List, Optional

# Colors
THEME_COLOR = 0x1DB954

# Discord rejects messages above 2000 characters
MESSAGE_LIMIT = 2000

def format_duration(sec: Optional[float]) -> str:
    """Format duration in seconds to readable string."""
    if sec is None:
        return "??:??"
    if sec == 0:
        return "LIVE"
    h, rem = divmod(int(sec), 3600)
    m, s = divmod(rem, 60)
    if h:
        return f"{h:d}:{m:02d}:{s:02d}"
    return f"{m:d}:{s:02d}"

def format_uptime(sec: float) -> str:
    """Format an uptime like '2d 3h 4m 5s'; leading zero units are dropped."""
    sec = max(0, int(sec))
    d, rem = divmod(sec, 86400)
    h, rem = divmod(rem, 3600)
    m, s = divmod(rem, 60)
    parts = []
    if d:
        parts.append(f"{d}d")
    if d or h:
        parts.append(f"{h}h")
    if d or h or m:
        parts.append(f"{m}m")
    parts.append(f"{s}s")
    return " ".join(parts)

def truncate(text: Optional[str], n: int = 60) -> str:
    """Truncate text to specified length with ellipsis."""
    if not text:
        return ""
    return text if len(text) <= n else text[: n - 1].rstrip() + "…"

def chunk_lines(lines: Iterable[str], limit: int = MESSAGE_LIMIT - 100) -> List[str]:
    """Join lines into as few blocks as possible, each at most `limit` characters.

    A single line longer than the limit is truncated rather than split.
    """
    chunks: List[str] = []
    cur: List[str] = []
    size = 0
    for line in lines:
        line = truncate(line, limit)
        extra = len(line) + (1 if cur else 0)
        if cur and size + extra > limit:
            chunks.append("\n".join(cur))
            cur, size = [], 0
            extra = len(line)
        cur.append(line)
        size += extra
    if cur:
        chunks.append("\n".join(cur))
    return chunks
