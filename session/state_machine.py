"""
Navigation state machine.

Keeps extraction and match results scoped to the page identity they were
computed for:
- Identity changes are detected by polling the host URL and by explicit
  ``notify_navigation()`` calls; both funnel into ``check_identity()``
- A change cancels timers and in-flight work, dismisses transient UI,
  drops cached facts/matches and recomputes for the new identity
- Every async result is checked against the current identity before it is
  applied; a result for a previous page is discarded
- With at least one match the toast is shown after a short delay, dismissed
  after a countdown, and the badge starts flashing until the user opens the
  alternatives
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from core.catalog import CatalogRepository
from core.exceptions import CatalogLoadError, MalformedCatalogRowError, StaleResult
from core.identity import is_product_page
from core.models import CatalogEntry, MatchResult, PageFacts, PageIdentity, ProductMeta
from extraction.product_meta import Fetcher, ProductMetaResolver, collect_page_facts
from matching.matcher import DEFAULT_LIMIT, is_item_in_catalog, match_catalog
from utils.logger import PageLogAdapter

from .emitter import EventEmitter
from .events import (
    BADGE_CLEAR,
    BADGE_START_FLASHING,
    BADGE_STOP_FLASHING,
    DISMISS,
    IMAGE_RESOLVED,
    META_RESOLVED,
    RECLASSIFIED,
    SHOW_ALTERNATIVES,
    SURFACE_MODAL,
    SURFACE_TOAST,
    UITriggerEvent,
)

logger = logging.getLogger(__name__)


class HostPage(Protocol):
    """The page being observed."""

    def current_url(self) -> str: ...

    async def read_markup(self) -> str | None: ...


class NavigationState(str, Enum):
    IDLE = "idle"
    COMPUTING = "computing"
    COMPUTED = "computed"


@dataclass
class SessionState:
    """
    Mutable state shared across one page context.

    The catalog repository memoizes its own load; the image cache is keyed
    by product URL and survives navigation. Facts and matches belong to
    ``identity`` and are dropped whenever it changes.
    """

    catalog: CatalogRepository
    image_cache: dict[str, asyncio.Future[str | None]] = field(default_factory=dict)
    identity: PageIdentity | None = None
    facts: PageFacts | None = None
    matches: MatchResult | None = None
    suppressed: bool = False

    def invalidate(self, identity: PageIdentity | None) -> None:
        self.identity = identity
        self.facts = None
        self.matches = None
        self.suppressed = False


def _log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(f"[Navigation] Background task failed: {error}", exc_info=error)


class NavigationStateMachine:
    """Tracks page identity and sequences the UI triggers for it."""

    def __init__(
        self,
        host: HostPage,
        session: SessionState,
        emitter: EventEmitter | None = None,
        fetcher: Fetcher | None = None,
        *,
        limit: int = DEFAULT_LIMIT,
        poll_interval: float = 1.0,
        toast_delay: float = 2.0,
        toast_countdown: float = 5.0,
    ):
        self.host = host
        self.session = session
        self.emitter = emitter or EventEmitter()
        self.fetcher = fetcher
        self.resolver = ProductMetaResolver(fetcher) if fetcher is not None else None
        self.limit = limit
        self.poll_interval = poll_interval
        self.toast_delay = toast_delay
        self.toast_countdown = toast_countdown

        self.state = NavigationState.IDLE
        self.toast_open = False
        self.flashing = False

        self._poll_task: asyncio.Task | None = None
        self._compute_task: asyncio.Task | None = None
        self._toast_task: asyncio.Task | None = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Handle page-ready and begin polling for navigation."""
        self.check_identity()
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info(f"[Navigation] Watching page identity every {self.poll_interval}s")

    async def stop(self) -> None:
        """Cancel polling, timers and in-flight work."""
        tasks = [t for t in (self._poll_task, self._compute_task, self._toast_task) if t and not t.done()]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._poll_task = None
        self._compute_task = None
        self._toast_task = None
        logger.info("[Navigation] Stopped")

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                self.check_identity()
            except Exception as e:
                logger.error(f"[Navigation] Identity check failed: {e}")

    def notify_navigation(self) -> bool:
        """Hook for history push/replace/pop notifications."""
        return self.check_identity()

    # =========================================================================
    # Identity
    # =========================================================================

    def _emit(
        self,
        event_type: str,
        identity: PageIdentity | None = None,
        surface: str | None = None,
        payload: dict | None = None,
    ) -> None:
        self.emitter.emit(
            UITriggerEvent(event_type, identity or self.session.identity, surface=surface, payload=payload)
        )

    def _live_identity(self) -> PageIdentity:
        return PageIdentity.from_url(self.host.current_url())

    def is_current(self, identity: PageIdentity | None) -> bool:
        if identity is None:
            return False
        return identity.same_page(self.session.identity) and identity.same_page(self._live_identity())

    def _ensure_current(self, identity: PageIdentity) -> None:
        if not self.is_current(identity):
            raise StaleResult(identity.url, self.host.current_url())

    def _cancel_pending(self) -> None:
        for task in (self._compute_task, self._toast_task):
            if task is not None and not task.done():
                task.cancel()
        self._compute_task = None
        self._toast_task = None

    def check_identity(self) -> bool:
        """
        Compare the host URL with the tracked identity.

        Returns True when the identity changed (or was seen for the first
        time) and the session was reset for it.
        """
        new_identity = self._live_identity()
        old_identity = self.session.identity
        if old_identity is not None and old_identity.url == new_identity.url:
            return False

        self._cancel_pending()
        if old_identity is not None:
            logger.info(f"[Navigation] Identity changed from {old_identity.url}", extra={"url": new_identity.url})
            if self.toast_open:
                self._emit(DISMISS, old_identity, surface=SURFACE_TOAST)
            else:
                self._emit(DISMISS, old_identity)

        self.toast_open = False
        self.flashing = False
        self.session.invalidate(new_identity)
        self.state = NavigationState.IDLE
        self._emit(BADGE_CLEAR, new_identity)

        if not is_product_page(new_identity.url):
            logger.debug("[Navigation] Not a product page; staying idle", extra={"url": new_identity.url})
            return True

        if old_identity is not None:
            self._emit(RECLASSIFIED, new_identity)

        self._compute_task = asyncio.create_task(self.compute())
        self._compute_task.add_done_callback(_log_task_failure)
        return True

    async def wait_for_compute(self) -> MatchResult | None:
        """Await the in-flight compute started by the last identity change."""
        task = self._compute_task
        if task is None:
            return self.session.matches
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                return None
            raise

    # =========================================================================
    # Compute
    # =========================================================================

    async def compute(self, *, schedule_toast: bool = True, force: bool = False) -> MatchResult | None:
        """
        Extract facts and match the catalog for the current identity.

        Returns None when the result was discarded (stale identity or no
        catalog available).
        """
        identity = self.session.identity
        if identity is None or not is_product_page(identity.url):
            return None
        self.state = NavigationState.COMPUTING
        log = PageLogAdapter(logger, identity.url, identity.item_id)

        try:
            catalog = await self.session.catalog.load()
        except (CatalogLoadError, MalformedCatalogRowError) as e:
            log.warning(f"[Navigation] Catalog unavailable: {e}")
            if self.is_current(identity):
                self.state = NavigationState.IDLE
            return None

        try:
            self._ensure_current(identity)

            if not force and is_item_in_catalog(identity.item_id, catalog):
                log.info("[Navigation] Current item is in the catalog; no alternatives")
                self.session.matches = MatchResult()
                self.session.suppressed = True
                self.state = NavigationState.COMPUTED
                self._stop_flashing()
                self._emit(DISMISS, identity)
                return self.session.matches

            markup = await self.host.read_markup()
            self._ensure_current(identity)

            facts = await collect_page_facts(markup, identity.url, self.fetcher)
            self._ensure_current(identity)
        except StaleResult as e:
            log.debug(f"[Navigation] {e}")
            return None

        matches = match_catalog(facts, catalog, limit=self.limit)
        self.session.facts = facts
        self.session.matches = matches
        self.session.suppressed = False
        self.state = NavigationState.COMPUTED

        log.info(f"[Navigation] {len(matches.top)} alternatives for {facts.title[:60]!r}")

        if matches and schedule_toast:
            self._toast_task = asyncio.create_task(self._toast_sequence(identity, matches))
            self._toast_task.add_done_callback(_log_task_failure)
        return matches

    # =========================================================================
    # UI sequencing
    # =========================================================================

    @staticmethod
    def _alternatives_payload(matches: MatchResult) -> dict:
        return {"alternatives": [candidate.to_dict() for candidate in matches.top]}

    def _start_flashing(self) -> None:
        if not self.flashing:
            self.flashing = True
            self._emit(BADGE_START_FLASHING)

    def _stop_flashing(self) -> None:
        self.flashing = False
        self._emit(BADGE_STOP_FLASHING)

    async def _toast_sequence(self, identity: PageIdentity, matches: MatchResult) -> None:
        await asyncio.sleep(self.toast_delay)
        if not self.is_current(identity):
            logger.debug("[Navigation] Toast skipped; page changed", extra={"url": identity.url})
            return

        self.toast_open = True
        self._emit(SHOW_ALTERNATIVES, identity, surface=SURFACE_TOAST, payload=self._alternatives_payload(matches))

        await asyncio.sleep(self.toast_countdown)
        self.toast_open = False
        self._emit(DISMISS, identity, surface=SURFACE_TOAST)
        self._start_flashing()

    def close_toast(self) -> None:
        """User dismissed the toast before the countdown finished."""
        if self._toast_task is not None and not self._toast_task.done():
            self._toast_task.cancel()
        self._toast_task = None
        if self.toast_open:
            self.toast_open = False
            self._emit(DISMISS, surface=SURFACE_TOAST)
            self._start_flashing()

    async def open_alternatives(self, force: bool = False) -> MatchResult:
        """User opened the alternatives; reuse cached matches while still valid."""
        if self._toast_task is not None and not self._toast_task.done():
            self._toast_task.cancel()
        self._toast_task = None
        if self.toast_open:
            self.toast_open = False
            self._emit(DISMISS, surface=SURFACE_TOAST)
        self._stop_flashing()

        identity = self.session.identity
        matches = self.session.matches
        cached_valid = (
            self.state is NavigationState.COMPUTED
            and matches is not None
            and self.is_current(identity)
            and not (force and self.session.suppressed)
        )
        if not cached_valid:
            if self._compute_task is not None and not self._compute_task.done():
                self._compute_task.cancel()
                self._compute_task = None
            matches = await self.compute(schedule_toast=False, force=force)

        if matches is None:
            return MatchResult()
        if matches:
            self._emit(SHOW_ALTERNATIVES, surface=SURFACE_MODAL, payload=self._alternatives_payload(matches))
        return matches

    # =========================================================================
    # Per-entry resolution
    # =========================================================================

    async def resolve_image(self, entry: CatalogEntry) -> str | None:
        """Image for a catalog entry.

        The catalog image wins; the item page is only fetched when the entry
        has none. Fetches are shared per product URL, including in-flight ones.
        """
        identity = self.session.identity
        if identity is None:
            return None

        product_url = entry.product_url
        if entry.image_url:
            image_url = entry.image_url
        elif self.resolver is None:
            image_url = None
        else:
            lookup = self.session.image_cache.get(product_url)
            if lookup is None:
                lookup = asyncio.ensure_future(self.resolver.resolve_image(product_url))
                self.session.image_cache[product_url] = lookup
            image_url = await asyncio.shield(lookup)

        try:
            self._ensure_current(identity)
        except StaleResult as e:
            logger.debug(f"[Navigation] Image for {entry.id} dropped: {e}")
            return None

        self._emit(IMAGE_RESOLVED, identity, payload={"product_url": product_url, "image_url": image_url})
        return image_url

    async def resolve_meta(self, entry: CatalogEntry) -> ProductMeta | None:
        """Live rating, review count and price for a catalog entry."""
        identity = self.session.identity
        if identity is None:
            return None

        meta = await self.resolver.resolve_meta(entry.product_url) if self.resolver else ProductMeta()
        try:
            self._ensure_current(identity)
        except StaleResult as e:
            logger.debug(f"[Navigation] Meta for {entry.id} dropped: {e}")
            return None

        self._emit(META_RESOLVED, identity, payload={"product_url": entry.product_url, **meta.to_dict()})
        return meta
