"""
Subscription Engine
Polls every site for new releases and queues those matching a subscription
"""
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, List, Mapping, Optional, Sequence, Tuple
import logging
import re
import threading

from ..models.records import DownloadRecord, Subscription, utc_now
from ..models.release import Release
from ..sources.base import SiteAdapter
from ..utils.sizes import format_size
from .release_cache import ReleaseCache
from .sqlite_store import SqliteStore

logger = logging.getLogger(__name__)

MAX_SUBSCRIBERS_SHOWN = 5

CompiledSubscription = Tuple[Subscription, re.Pattern]


class SubscriptionEngine:
    """One tick per run_once(); sites are polled concurrently and the tick waits for all of them"""

    def __init__(
        self,
        store: SqliteStore,
        sites: Mapping[str, SiteAdapter],
        downloads,
        size_limit: int,
        cache: Optional[ReleaseCache] = None,
    ):
        self.store = store
        self.sites = dict(sites)
        self.downloads = downloads
        self.size_limit = int(size_limit)
        self.cache = cache or ReleaseCache(self.sites.keys())
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=max(1, len(self.sites)),
                    thread_name_prefix="subscription-site",
                )
            return self._executor

    def close(self):
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False)
                self._executor = None

    def run_once(self):
        subscriptions = self.store.find_subscriptions()
        if not subscriptions:
            # Nothing to match against, no reason to poll the sites.
            return
        compiled = self._compile(subscriptions)
        if not compiled or not self.sites:
            return

        executor = self._get_executor()
        futures = {
            executor.submit(self.check_site, site, compiled): name
            for name, site in self.sites.items()
        }
        wait(futures)
        for future, name in futures.items():
            error = future.exception()
            if error is not None:
                logger.error("Subscription check of site %s failed: %s", name, error)

    def _compile(self, subscriptions: Sequence[Subscription]) -> List[CompiledSubscription]:
        compiled = []
        for subscription in subscriptions:
            try:
                compiled.append((subscription, re.compile(subscription.pattern)))
            except re.error as e:
                logger.warning("Skipping subscription %s with invalid pattern %r: %s",
                               subscription.id, subscription.pattern, e)
        return compiled

    def check_site(self, site: SiteAdapter, subscriptions: Sequence[CompiledSubscription]) -> int:
        """Walk the site's newest releases; returns the number of new releases evaluated"""
        was_cold = self.cache.is_cold(site.name)
        evaluated = 0
        page = 1
        pages = None
        while pages is None or page <= pages:
            results = site.browse(page)
            pages = results.pages
            found_new = False
            for release in results.releases:
                if self.cache.seen(site.name, release.id):
                    continue
                found_new = True
                self.cache.record(site.name, release.id)
                evaluated += 1
                try:
                    self.evaluate(site, release, subscriptions)
                except Exception:
                    logger.exception("Failed to process release %r (ID %s) of site %s.",
                                     release.name, release.id, site.name)
            if was_cold:
                # First run only fills the cache.
                break
            if not found_new:
                logger.info("Found no new releases on %s.", site.name)
                break
            page += 1
        return evaluated

    def evaluate(self, site: SiteAdapter, release: Release, subscriptions: Sequence[CompiledSubscription]) -> bool:
        """Match one release against every subscription; returns True if it was queued"""
        matching = [subscription for subscription, pattern in subscriptions if pattern.search(release.name)]
        if not matching:
            logger.info("No matching subscription for new release %s (ID %s).", release.name, release.id)
            return False
        if release.size > self.size_limit:
            logger.warning(
                'Ignoring release "%s" because its size (%s) exceeds the system limit of %s.',
                release.name, format_size(release.size), format_size(self.size_limit),
            )
            return False
        return self._on_match(site, release, matching)

    def _on_match(self, site: SiteAdapter, release: Release, matching: List[Subscription]) -> bool:
        user_ids = self._distinct_user_ids(matching)
        self._log_subscribers(release, matching, user_ids)
        self.store.record_subscription_match([s.id for s in matching], utc_now())
        try:
            data = site.download(release.id)
            self.downloads.submit(data)
        except Exception as e:
            # Counters stay incremented.
            logger.error('Failed to queue release "%s" (ID %s) of site %s: %s',
                         release.name, release.id, site.name, e)
            return False
        logger.info('Successfully queued release "%s".', release.name)
        for user_id in user_ids:
            self.store.add_download(DownloadRecord(
                user_id=user_id,
                name=release.name,
                size=release.size,
                manual=False,
            ))
        return True

    @staticmethod
    def _distinct_user_ids(matching: Sequence[Subscription]) -> List[int]:
        seen: Dict[int, None] = {}
        for subscription in matching:
            seen.setdefault(subscription.user_id, None)
        return list(seen)

    def _log_subscribers(self, release: Release, matching: Sequence[Subscription], user_ids: List[int]):
        shown = user_ids[:MAX_SUBSCRIBERS_SHOWN]
        names = [user.name for user in self.store.find_users(shown)]
        if len(user_ids) > MAX_SUBSCRIBERS_SHOWN:
            names.append("...")
        logger.info('Found %d matching subscription(s) (%s) for new release "%s" (ID %s).',
                    len(matching), ", ".join(names), release.name, release.id)
