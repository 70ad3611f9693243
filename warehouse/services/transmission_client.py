"""
Transmission Client
JSON-RPC client for the download daemon: listing, submission and removal of torrents
"""
import base64
import logging
import random
import threading
from typing import Any, Dict, Iterable, List, Optional

import requests

from ..core.errors import DownloadDaemonError
from ..models.queued_torrent import QueuedTorrent

logger = logging.getLogger(__name__)

DEFAULT_FIELDS = ["id", "name", "addedDate", "totalSize"]


class TransmissionClient:
    """Transmission RPC client"""

    SESSION_HEADER = "X-Transmission-Session-Id"

    def __init__(
        self,
        *,
        protocol: str = "http",
        host: str = "127.0.0.1",
        port: int = 9091,
        path: str = "/transmission/rpc",
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.url = f"{protocol}://{host}:{port}{path}"
        self.timeout = float(timeout)
        self._lock = threading.Lock()

        self.session = requests.Session()
        if username and password:
            self.session.auth = (username, password)
        self.session.headers.update({self.SESSION_HEADER: ""})

    def _post(self, query: Dict[str, Any]) -> requests.Response:
        try:
            return self.session.post(self.url, json=query, timeout=self.timeout)
        except requests.RequestException as e:
            raise DownloadDaemonError(f"Transmission request failed: {e}") from e

    def call(self, method: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run one RPC call and return its arguments"""
        with self._lock:
            tag = random.randint(0, 2 ** 31 - 1)
        query: Dict[str, Any] = {"method": method, "tag": tag}
        if arguments is not None:
            query["arguments"] = arguments

        logger.debug("Requesting %s (tag %s)", method, tag)
        response = self._post(query)
        if response.status_code == 409:
            # Session id handshake; answered once.
            session_id = response.headers.get(self.SESSION_HEADER)
            if not session_id:
                raise DownloadDaemonError("Transmission did not provide a session id.")
            self.session.headers[self.SESSION_HEADER] = session_id
            response = self._post(query)

        if response.status_code != 200:
            raise DownloadDaemonError(f"Transmission API error ({response.status_code}): {response.text}")
        try:
            data = response.json()
        except ValueError as e:
            raise DownloadDaemonError("Transmission returned a malformed response.") from e

        if data.get("tag") != tag:
            raise DownloadDaemonError("Transmission response tag does not match the request.")
        if data.get("result") != "success":
            raise DownloadDaemonError(f"Transmission call {method} failed: {data.get('result')}")
        return data.get("arguments") or {}

    def list_all(self, ids: Optional[Iterable[int]] = None, fields: Optional[List[str]] = None) -> List[QueuedTorrent]:
        """List queued torrents; all of them when ids is omitted"""
        arguments: Dict[str, Any] = {"fields": list(fields or DEFAULT_FIELDS)}
        if ids is not None:
            arguments["ids"] = [int(i) for i in ids]
        result = self.call("torrent-get", arguments)
        return [QueuedTorrent.from_rpc(item) for item in result.get("torrents", [])]

    def submit(self, file_bytes: bytes) -> QueuedTorrent:
        """Add a torrent file; returns the daemon's entry (new or duplicate)"""
        metainfo = base64.b64encode(file_bytes).decode("ascii")
        result = self.call("torrent-add", {"metainfo": metainfo})
        item = result.get("torrent-added") or result.get("torrent-duplicate")
        if not item:
            raise DownloadDaemonError("Transmission did not report the added torrent.")
        return QueuedTorrent.from_rpc(item)

    def remove(self, ids: Iterable[int], delete_data: bool = True):
        self.call("torrent-remove", {"ids": [int(i) for i in ids], "delete-local-data": bool(delete_data)})
