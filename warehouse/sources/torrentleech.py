"""
TorrentLeech Site
Credentialed catalog with JSON listings, login on demand and one re-login per request.
"""
from typing import List, Optional
from urllib.parse import quote, unquote
import logging
import math
import re
import threading

import requests
from bs4 import BeautifulSoup

from ..core.errors import SiteError
from ..models.release import BrowseResults, Release, ReleaseInfo
from .base import SiteAdapter

logger = logging.getLogger(__name__)


class TorrentLeechSite(SiteAdapter):
    """torrentleech.org adapter"""

    name = "torrentleech.org"
    BASE_URL = "https://www.torrentleech.org"
    TORRENT_MIME_TYPE = "application/x-bittorrent"

    categories = {
        8: "Cam",
        9: "TS/TC",
        11: "DVDRip/DVDScreener",
        37: "WEBRip",
        43: "HDRip",
        14: "BlurayRip",
        12: "DVD-R",
        13: "Bluray",
        47: "4K",
        15: "Boxsets",
        29: "Documentaries",
        26: "Episodes",
        32: "Episodes HD",
        27: "Boxsets",
        17: "PC",
        42: "Mac",
        18: "XBOX",
        19: "XBOX360",
        40: "XBOXONE",
        20: "PS2",
        21: "PS3",
        39: "PS4",
        22: "PSP",
        28: "Wii",
        30: "Nintendo DS",
        48: "Nintendo Switch",
        23: "PC-ISO",
        24: "Mac",
        25: "Mobile",
        33: "0-day",
        34: "Anime",
        35: "Cartoons",
        45: "EBooks",
        46: "Comics",
        31: "Audio",
        16: "Music videos",
        36: "Movies",
        44: "TV Series",
    }

    def __init__(self, username: str, password: str, timeout: float = 25.0):
        self.username = username
        self.password = password
        self.timeout = float(timeout)
        self.last_error = ""
        self._logged_in = False
        self._lock = threading.RLock()

        self.session = requests.Session()
        # Imitate a desktop browser.
        self.session.headers.update({
            "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                          "(KHTML, like Gecko) Chrome/79.0.3945.88 Safari/537.36",
        })

    # ---- Public contract ----
    def browse(self, page: int = 1) -> BrowseResults:
        url = self._browse_url(f"{self.BASE_URL}/torrents/browse/index", None, None, page)
        return self._get_browse_results(url)

    def search(self, query: str, categories: Optional[List[int]] = None, page: int = 1) -> BrowseResults:
        url = self._browse_url(f"{self.BASE_URL}/torrents/browse/list", query, categories, page)
        return self._get_browse_results(url)

    def download(self, release_id: int) -> bytes:
        url = f"{self.BASE_URL}/download/{release_id}/{release_id}.torrent"
        response = self._get(url, "Failed to download torrent file.")
        content_type = (response.headers.get("Content-Type") or "").split(";")[0].strip().lower()
        if content_type != self.TORRENT_MIME_TYPE:
            raise SiteError("Unexpected MIME type.")
        return response.content

    def get_info(self, release_id: int) -> ReleaseInfo:
        response = self._get(
            f"{self.BASE_URL}/torrent/{release_id}",
            "Failed to retrieve torrent details.",
        )
        soup = BeautifulSoup(response.content, "html.parser")
        return ReleaseInfo(
            name=self._extract_name(soup),
            size=self._extract_size(soup),
            seeders=self._extract_count(soup.select_one("span.seeders-text"), "seeders"),
            leechers=self._extract_count(soup.select_one("span.leechers-text"), "leechers"),
            downloads=self._extract_count(self._description_value(soup, "Downloaded"), "downloads"),
        )

    # ---- Authentication ----
    def login(self):
        try:
            response = self.session.post(
                f"{self.BASE_URL}/user/account/login/",
                data={"username": self.username, "password": self.password},
                timeout=self.timeout,
                allow_redirects=False,
            )
        except requests.RequestException as e:
            self._logged_in = False
            self.last_error = f"Login request failed: {e}"
            raise SiteError(self.last_error) from e
        if response.status_code != 302:
            self._logged_in = False
            self.last_error = "Unexpected login status code."
            raise SiteError(self.last_error)
        if response.headers.get("Location") != "/":
            self._logged_in = False
            self.last_error = "Unexpected login location header."
            raise SiteError(self.last_error)
        self._logged_in = True
        self.last_error = ""
        logger.info("Logged in to %s.", self.name)

    def _ensure_logged_in(self):
        with self._lock:
            if not self._logged_in:
                self.login()

    def _fetch(self, url: str) -> requests.Response:
        try:
            return self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            self.last_error = str(e)
            raise SiteError(f"Request to {self.name} failed: {e}") from e

    def _get(self, url: str, failure_message: str) -> requests.Response:
        self._ensure_logged_in()
        response = self._fetch(url)
        if response.status_code == 200:
            return response

        # Session may have expired; relog once and retry.
        logger.info("%s answered %s for %s, logging in again.", self.name, response.status_code, url)
        with self._lock:
            self._logged_in = False
            self.login()
        response = self._fetch(url)
        if response.status_code != 200:
            self._logged_in = False
            self.last_error = failure_message
            raise SiteError(failure_message)
        return response

    # ---- Listings ----
    def _browse_url(self, base_url: str, query: Optional[str], categories: Optional[List[int]], page: int) -> str:
        url = base_url
        if categories:
            url += "/categories/" + ",".join(str(int(c)) for c in categories)
        if query is not None:
            url += "/query/" + quote(query, safe="")
        if page >= 2:
            url += f"/page/{page}"
        return url

    def _get_browse_results(self, url: str) -> BrowseResults:
        response = self._get(url, "Failed to retrieve torrents. Check query parameters.")
        try:
            payload = response.json()
            rows = payload.get("torrentList") or []
            num_found = int(payload.get("numFound", 0) or 0)
            per_page = int(payload.get("perPage", 0) or 0)
        except (ValueError, AttributeError, TypeError) as e:
            raise SiteError(f"Malformed listing from {self.name}: {e}") from e

        releases = []
        for row in rows:
            release = self._parse_row(row)
            if release:
                releases.append(release)
        pages = math.ceil(num_found / per_page) if per_page > 0 else 0
        return BrowseResults(releases=releases, pages=pages)

    def _parse_row(self, row: dict) -> Optional[Release]:
        try:
            release_id = int(row.get("fid"))
        except (TypeError, ValueError):
            return None
        name = str(row.get("name") or "").strip()
        if not name:
            return None
        return Release(
            id=release_id,
            name=name,
            category_id=int(row.get("categoryID", 0) or 0),
            size=int(row.get("size", 0) or 0),
            added=self._added_to_iso(row.get("addedTimestamp")),
            downloads=int(row.get("completed", 0) or 0),
            seeders=int(row.get("seeders", 0) or 0),
            leechers=int(row.get("leechers", 0) or 0),
        )

    @staticmethod
    def _added_to_iso(value) -> Optional[str]:
        # "2020-01-31 13:45:00" in UTC.
        match = re.search(r"(\d+-\d+-\d+) (\d+:\d+:\d+)", str(value or ""))
        if not match:
            return value or None
        return f"{match.group(1)}T{match.group(2)}.000Z"

    # ---- Details page ----
    def _extract_name(self, soup: BeautifulSoup) -> str:
        link = soup.find("a", href=re.compile(r"^/download/\d+/.+\.torrent$"))
        if link is None:
            raise SiteError('Failed to extract parameter "name".')
        match = re.match(r"^/download/\d+/(.+?)\.torrent$", link.get("href", ""))
        return unquote(match.group(1))

    def _description_value(self, soup: BeautifulSoup, label: str):
        for cell in soup.select("td.description"):
            if cell.get_text(strip=True) == label:
                return cell.find_next_sibling("td")
        return None

    def _extract_size(self, soup: BeautifulSoup) -> int:
        cell = self._description_value(soup, "Size")
        if cell is None:
            raise SiteError('Failed to extract parameter "size".')
        try:
            return Release.parse_size(cell.get_text(" ", strip=True))
        except ValueError as e:
            raise SiteError('Failed to extract parameter "size".') from e

    @staticmethod
    def _extract_count(node, name: str) -> int:
        match = re.match(r"\s*(\d+)", node.get_text(" ", strip=True)) if node is not None else None
        if not match:
            raise SiteError(f'Failed to extract parameter "{name}".')
        return int(match.group(1))
