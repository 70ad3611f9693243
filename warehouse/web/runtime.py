"""Runtime bootstrap for the Warehouse web API."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Dict, List, Optional

from ..core.accounts import AccountService
from ..core.auth_gate import AuthGate
from ..core.configuration import Configuration
from ..core.disk_reclaimer import DiskReclaimer
from ..core.download_gate import DownloadGate
from ..core.periodic import PeriodicTask
from ..core.session_store import SessionStore
from ..core.sqlite_store import SqliteStore
from ..core.subscription_engine import SubscriptionEngine
from ..core.subscriptions import SubscriptionService
from ..services.transmission_client import TransmissionClient
from ..sources.base import SiteAdapter
from ..sources.registry import build_sites

logger = logging.getLogger(__name__)


@dataclass
class WarehouseRuntime:
    """Shared service graph used by web endpoints and background tasks."""

    config: Configuration
    store: SqliteStore
    sessions: SessionStore
    gate: AuthGate
    accounts: AccountService
    subscriptions: SubscriptionService
    sites: Dict[str, SiteAdapter]
    downloads: TransmissionClient
    download_gate: DownloadGate
    engine: SubscriptionEngine
    reclaimer: DiskReclaimer
    tasks: List[PeriodicTask] = field(default_factory=list)

    def start(self):
        for task in self.tasks:
            task.start()

    def stop(self):
        """Stop scheduling ticks and release shared resources."""
        for task in self.tasks:
            task.stop()
        self.engine.close()
        self.store.close()
        logger.info("Runtime stopped.")


def build_runtime(
    config: Configuration,
    *,
    store: Optional[SqliteStore] = None,
    sites: Optional[Dict[str, SiteAdapter]] = None,
    downloads=None,
) -> WarehouseRuntime:
    """Create and wire core services from the configuration."""

    store = store or SqliteStore(config.database_path)
    sessions = SessionStore(
        store,
        max_sessions_per_user=config.max_sessions_per_user,
        max_age_seconds=config.session_max_age,
    )
    gate = AuthGate(sessions, config.external_hostname)
    if sites is None:
        sites = build_sites(config.sites, timeout=config.site_request_timeout)
    if downloads is None:
        transmission = config.transmission
        downloads = TransmissionClient(
            protocol=str(transmission.get("protocol") or "http"),
            host=str(transmission.get("host") or "127.0.0.1"),
            port=int(transmission.get("port") or 9091),
            path=str(transmission.get("path") or "/transmission/rpc"),
            username=transmission.get("username"),
            password=transmission.get("password"),
            timeout=float(transmission.get("timeout") or 30.0),
        )

    size_limit = config.torrent_size_limit
    engine = SubscriptionEngine(store, sites, downloads, size_limit)
    free_disk_space = config.free_disk_space
    reclaimer = DiskReclaimer(
        downloads,
        str(free_disk_space.get("path") or "/"),
        config.free_disk_space_min_bytes,
    )
    tasks = [
        PeriodicTask("subscription-check", config.subscription_interval, engine.run_once),
        PeriodicTask("free-disk-space", float(free_disk_space.get("interval") or 300), reclaimer.run_once),
    ]

    return WarehouseRuntime(
        config=config,
        store=store,
        sessions=sessions,
        gate=gate,
        accounts=AccountService(store),
        subscriptions=SubscriptionService(store),
        sites=dict(sites),
        downloads=downloads,
        download_gate=DownloadGate(store, downloads, size_limit),
        engine=engine,
        reclaimer=reclaimer,
        tasks=tasks,
    )
