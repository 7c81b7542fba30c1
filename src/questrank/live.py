"""Live leaderboard subscriptions.

A subscription re-ranks every full snapshot the source pushes and hands the
result to the caller. Delivery and unsubscribe share one lock, so once
unsubscribe() returns the caller's callbacks never run again, even if the
source still had a notification in flight.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable

from questrank.errors import QuestRankError, SubscriptionError
from questrank.leaderboard import LeaderboardEntry, LeaderboardScope, rank_snapshot
from questrank.sources import Snapshot, SnapshotSource

logger = logging.getLogger(__name__)

UpdateCallback = Callable[["list[LeaderboardEntry] | None"], None]
ErrorCallback = Callable[[SubscriptionError], None]


class LeaderboardSubscription:
    """Handle for a live leaderboard. Call it (or unsubscribe()) to stop."""

    def __init__(
        self,
        scope: LeaderboardScope,
        on_update: UpdateCallback,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self.scope = scope
        self._on_update = on_update
        self._on_error = on_error
        self._lock = threading.RLock()
        self._detached = False
        self._detach_source: Callable[[], None] | None = None

    @property
    def active(self) -> bool:
        with self._lock:
            return not self._detached

    def attach(self, source: SnapshotSource) -> LeaderboardSubscription:
        """Register with the source. The source may deliver before this returns."""
        try:
            detach = source.subscribe(self.scope.path, self._deliver, self._fail)
        except BaseException:
            with self._lock:
                self._detached = True
            raise
        with self._lock:
            if not self._detached:
                self._detach_source = detach
                logger.debug("Subscribed to %s", self.scope.path)
                return self
        # Unsubscribed from inside the first delivery.
        detach()
        return self

    def unsubscribe(self) -> None:
        """Stop delivery and detach from the source. Safe to call twice."""
        with self._lock:
            if self._detached:
                return
            self._detached = True
            detach, self._detach_source = self._detach_source, None
        if detach is not None:
            detach()
        logger.debug("Unsubscribed from %s", self.scope.path)

    def __call__(self) -> None:
        self.unsubscribe()

    def __enter__(self) -> LeaderboardSubscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unsubscribe()

    def _deliver(self, snapshot: Snapshot | None) -> None:
        with self._lock:
            if self._detached:
                logger.debug("Dropped late update for %s", self.scope.path)
                return
            try:
                ranked = rank_snapshot(snapshot, self.scope)
            except QuestRankError as exc:
                self._report(exc)
                return
            self._on_update(ranked)

    def _fail(self, error: BaseException) -> None:
        with self._lock:
            if self._detached:
                return
            self._report(error)

    def _report(self, cause: BaseException) -> None:
        error = SubscriptionError(self.scope.path, cause)
        logger.warning("%s", error)
        if self._on_error is not None:
            self._on_error(error)


def subscribe_leaderboard(
    source: SnapshotSource,
    scope: LeaderboardScope,
    on_update: UpdateCallback,
    on_error: ErrorCallback | None = None,
) -> LeaderboardSubscription:
    """Watch a scope. `on_update` gets the full ranked list, or None if no data exists."""
    return LeaderboardSubscription(scope, on_update, on_error).attach(source)
