"""
Caching decorator for RedirectResolver.

Decisions are cached per source post id for a fixed TTL. Entries are dropped
when a redirect for the source is written or when the post it points at
changes. Failed lookups are never cached, and neither is a lookup that
overlapped an invalidation. Expired and surplus entries are evicted oldest
first whenever a new decision is stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock
from uuid import UUID

from inkwell.adapters.clock import SystemClock

from ._impl import RedirectResolver
from .models import RedirectDecision, TransientStoreError
from .ports import TimePort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Entry:
    decision: RedirectDecision | None
    expires_at: datetime


class CachingRedirectResolver:
    """Same read interface as RedirectResolver; also a CacheInvalidatorPort."""

    def __init__(
        self,
        resolver: RedirectResolver,
        ttl_seconds: int = 60,
        time_port: TimePort | None = None,
        max_entries: int = 10_000,
    ) -> None:
        self._resolver = resolver
        self._ttl = timedelta(seconds=ttl_seconds)
        self._time = time_port if time_port is not None else SystemClock()
        self._max_entries = max_entries
        # Insertion order is expiry order: the TTL is fixed and entries are
        # dropped before they are re-added.
        self._entries: dict[UUID, _Entry] = {}
        # target post id -> sources whose cached decision points at it
        self._by_target: dict[UUID, set[UUID]] = {}
        # Bumped by every invalidation; a lookup that overlaps one is not stored
        self._generation = 0
        self._lock = Lock()

    @property
    def size(self) -> int:
        return len(self._entries)

    def resolve(self, source_post_id: UUID) -> RedirectDecision | None:
        now = self._time.now_utc()
        with self._lock:
            entry = self._entries.get(source_post_id)
            if entry is not None and entry.expires_at > now:
                return entry.decision
            generation = self._generation

        try:
            decision = self._resolver.lookup(source_post_id)
        except TransientStoreError:
            logger.warning(
                "Redirect lookup failed for post %s; serving without redirect",
                source_post_id,
                exc_info=True,
            )
            return None

        with self._lock:
            if generation != self._generation:
                logger.debug(
                    "Redirect for post %s changed during lookup; not cached", source_post_id
                )
                return decision
            self._drop(source_post_id)
            self._evict(now)
            self._entries[source_post_id] = _Entry(decision, now + self._ttl)
            if decision is not None and decision.target.post_id is not None:
                self._by_target.setdefault(decision.target.post_id, set()).add(source_post_id)
        return decision

    def has_redirect(self, post_id: UUID) -> bool:
        return self._resolver.has_redirect(post_id)

    def inbound_redirect_sources(self, target_post_id: UUID) -> list[UUID]:
        return self._resolver.inbound_redirect_sources(target_post_id)

    def invalidate_redirect(self, source_post_id: UUID) -> None:
        # Decisions pointing at this source carry a stale one-hop peek too
        with self._lock:
            self._generation += 1
            self._drop(source_post_id)
            self._drop_pointing_at(source_post_id)

    def invalidate_target(self, post_id: UUID) -> None:
        with self._lock:
            self._generation += 1
            self._drop_pointing_at(post_id)

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._entries.clear()
            self._by_target.clear()

    def _evict(self, now: datetime) -> None:
        while self._entries:
            oldest_id, oldest = next(iter(self._entries.items()))
            if oldest.expires_at > now and len(self._entries) < self._max_entries:
                break
            self._drop(oldest_id)

    def _drop(self, source_post_id: UUID) -> None:
        entry = self._entries.pop(source_post_id, None)
        if entry is None or entry.decision is None:
            return
        target_id = entry.decision.target.post_id
        if target_id is not None:
            sources = self._by_target.get(target_id)
            if sources is not None:
                sources.discard(source_post_id)
                if not sources:
                    del self._by_target[target_id]

    def _drop_pointing_at(self, post_id: UUID) -> None:
        for source_id in self._by_target.pop(post_id, set()):
            self._entries.pop(source_id, None)
