"""Pending action store for the chat confirmation flow.

Holds at most one batch of proposed actions per user until the user confirms,
declines, or the batch expires. Entries live in process memory only.
"""

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from .actions import Action

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300
DEFAULT_SWEEP_INTERVAL_SECONDS = 60


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class PendingActionEntry:
    """A batch of actions awaiting confirmation for one user."""

    user_id: str
    actions: list[Action]
    created_at: datetime
    expires_at: datetime
    timestamp: datetime
    conversation_id: str | None = None

    def is_expired(self, now: datetime) -> bool:
        """Check if this entry has expired at ``now``."""
        return now > self.expires_at


class PendingActionStore:
    """In-memory, per-user store of pending action batches with TTL expiry.

    Expired entries are removed lazily on read and actively by a background
    sweep thread started with :meth:`start`.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            ttl_seconds: Lifetime of a pending batch (default: 300s)
            sweep_interval_seconds: Period of the background sweep (default: 60s)
            clock: Returns the current aware datetime (default: UTC wall clock)
        """
        self.ttl = timedelta(seconds=ttl_seconds)
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock or _utc_now
        self._entries: dict[str, PendingActionEntry] = {}
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._sweeper: threading.Thread | None = None

    def set(
        self,
        user_id: str,
        actions: Sequence[Action] | None,
        conversation_id: str | None = None,
    ) -> bool:
        """Store a batch for a user, replacing any existing one.

        Args:
            user_id: Owner of the batch
            actions: Non-empty ordered sequence of actions
            conversation_id: Optional correlation token

        Returns:
            True if stored, False if the input was rejected (no mutation)
        """
        if not user_id or not isinstance(user_id, str):
            logger.warning("Rejected pending actions: missing user id")
            return False
        if actions is None or isinstance(actions, str | bytes | dict):
            logger.warning("Rejected pending actions for %s: not a sequence", user_id)
            return False
        if not isinstance(actions, Sequence) or len(actions) == 0:
            logger.warning("Rejected pending actions for %s: empty batch", user_id)
            return False

        now = self._clock()
        entry = PendingActionEntry(
            user_id=user_id,
            actions=list(actions),
            created_at=now,
            expires_at=now + self.ttl,
            timestamp=now,
            conversation_id=conversation_id,
        )

        with self._lock:
            replaced = user_id in self._entries
            self._entries[user_id] = entry

        logger.info(
            "Stored %d pending actions for user %s%s",
            len(entry.actions),
            user_id,
            " (replaced previous batch)" if replaced else "",
        )
        return True

    def get(self, user_id: str) -> PendingActionEntry | None:
        """Retrieve a user's entry, evicting it if expired.

        Returns:
            PendingActionEntry if present and not expired, None otherwise
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[user_id]
                logger.debug("Pending actions for user %s expired", user_id)
                return None
            return entry

    def get_actions(self, user_id: str) -> list[Action]:
        """Return a copy of the user's pending actions (empty if none)."""
        entry = self.get(user_id)
        return list(entry.actions) if entry else []

    def has_pending(self, user_id: str) -> bool:
        return self.get(user_id) is not None

    def clear(self, user_id: str) -> bool:
        """Remove a user's entry.

        Returns:
            True if an entry existed
        """
        with self._lock:
            existed = self._entries.pop(user_id, None) is not None
        if existed:
            logger.info("Cleared pending actions for user %s", user_id)
        return existed

    def consume(self, user_id: str) -> PendingActionEntry | None:
        """Atomically take a user's live entry out of the store.

        Exactly one caller receives a given batch; concurrent callers get None.

        Returns:
            The removed entry, or None if absent or expired
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.pop(user_id, None)
        if entry is None:
            return None
        if entry.is_expired(now):
            logger.debug("Pending actions for user %s expired before consumption", user_id)
            return None
        logger.debug("Consumed %d pending actions for user %s", len(entry.actions), user_id)
        return entry

    def touch(self, user_id: str) -> None:
        """Restart the TTL window of an existing entry, expired or not."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return
            entry.expires_at = now + self.ttl
            entry.timestamp = now

    def get_metadata(self, user_id: str) -> dict[str, Any] | None:
        """Describe a user's pending batch without exposing action payloads."""
        entry = self.get(user_id)
        if entry is None:
            return None

        remaining = entry.expires_at - self._clock()
        return {
            "count": len(entry.actions),
            "conversation_id": entry.conversation_id,
            "created_at": entry.created_at.isoformat(),
            "expires_at": entry.expires_at.isoformat(),
            "timestamp": entry.timestamp.isoformat(),
            "remaining_seconds": max(0, int(remaining.total_seconds())),
            "action_types": [action.type.value for action in entry.actions],
        }

    def cleanup_expired(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of expired entries removed
        """
        now = self._clock()
        with self._lock:
            expired_users = [
                user_id for user_id, entry in self._entries.items() if entry.is_expired(now)
            ]
            for user_id in expired_users:
                del self._entries[user_id]

        if expired_users:
            logger.info("Swept %d expired pending action batches", len(expired_users))
        return len(expired_users)

    def get_stats(self) -> dict[str, Any]:
        """Store statistics for diagnostics."""
        with self._lock:
            total = len(self._entries)
        return {
            "total_entries": total,
            "ttl_minutes": self.ttl.total_seconds() / 60,
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def start(self) -> None:
        """Start the background sweep thread (idempotent)."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return

        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            name="pending-action-sweeper",
            daemon=True,
        )
        self._sweeper.start()
        logger.info(
            "Pending action sweeper started (interval=%ss, ttl=%ss)",
            self.sweep_interval_seconds,
            int(self.ttl.total_seconds()),
        )

    def shutdown(self, timeout: float | None = 5.0) -> None:
        """Stop the background sweep thread and wait for it to exit."""
        self._stop_event.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=timeout)
            self._sweeper = None
            logger.info("Pending action sweeper stopped")

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self.sweep_interval_seconds):
            try:
                self.cleanup_expired()
            except Exception as e:
                logger.error("Pending action sweep failed: %s", e, exc_info=True)
