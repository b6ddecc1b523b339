from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Track:
    """A queued reference to something playable plus its display metadata."""

    locator: str
    title: str
    requested_by: str
    requested_by_id: Optional[int] = None
    duration: Optional[float] = None
    uploader: Optional[str] = None
    thumbnail: Optional[str] = None
    is_live: bool = False

    @classmethod
    def from_info(cls, info: Dict[str, Any], query: str, requested_by: str,
                  requested_by_id: Optional[int] = None) -> 'Track':
        """Build a track from a yt-dlp info dict; the page URL becomes the locator."""
        locator = info.get("webpage_url") or info.get("original_url") or query
        return cls(
            locator=locator,
            title=info.get("title") or query,
            requested_by=requested_by,
            requested_by_id=requested_by_id,
            duration=info.get("duration"),
            uploader=info.get("uploader") or info.get("channel"),
            thumbnail=info.get("thumbnail"),
            is_live=bool(info.get("is_live")),
        )
