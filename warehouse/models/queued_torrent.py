"""
Queued Torrent Model
The download daemon's view of a queued item
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass
class QueuedTorrent:
    """Torrent entry as reported by the daemon; absent fields stay None"""
    id: int
    name: str = ""
    added_date: Optional[int] = None  # unix seconds
    total_size: Optional[int] = None
    rate_download: int = 0
    rate_upload: int = 0
    peers: int = 0
    status: Optional[int] = None

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "QueuedTorrent":
        peers = data.get("peers")
        return cls(
            id=int(data["id"]),
            name=str(data.get("name", "") or ""),
            added_date=data.get("addedDate"),
            total_size=data.get("totalSize"),
            rate_download=int(data.get("rateDownload", 0) or 0),
            rate_upload=int(data.get("rateUpload", 0) or 0),
            peers=len(peers) if isinstance(peers, list) else int(peers or 0),
            status=data.get("status"),
        )

    @property
    def added(self) -> Optional[str]:
        """Added time as an ISO date string"""
        if self.added_date is None:
            return None
        stamp = datetime.fromtimestamp(int(self.added_date), tz=timezone.utc)
        return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def to_state_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "downloadSpeed": self.rate_download,
            "uploadSpeed": self.rate_upload,
            "peers": self.peers,
            "size": self.total_size,
            "state": self.status,
            "added": self.added,
        }
