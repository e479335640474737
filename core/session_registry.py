"""
Active-Session Registry - Who Is Editing Which Design Right Now

This is the only piece of shared, frequently-mutated in-memory state in the
service. It maps a design id to the set of users that currently hold a live
collaborative editing connection on it.

Key Properties:
1. Transient: nothing here is persisted; a restart empties the registry and
   clients must join again.
2. No dangling entries: an entry exists only while its editor set is
   non-empty.
3. Linearizable per design: join/leave/query on the same design id are
   serialized by that design's lock stripe. Whole-registry reads
   (active_designs, get_stats) take every stripe in order.
4. Non-suspending: every method is synchronous and holds its lock only for
   a few dictionary operations, so it is safe to call from coroutines and
   from worker threads alike.

Locking:
A fixed pool of locks ("stripes") is allocated up front and a design id
always maps to the same stripe. Two different designs only share a lock when
they hash onto the same stripe, and even then each critical section is a
handful of dict operations.
"""

import logging
import os
import threading
import zlib
from contextlib import contextmanager
from typing import Dict, FrozenSet, List, Set

from .errors import DesignConflictError

logger = logging.getLogger(__name__)

DEFAULT_LOCK_STRIPES = int(os.getenv("SESSION_LOCK_STRIPES", "64"))


class ActiveSessionRegistry:
    """
    Process-wide table of live editing sessions, keyed by design id.

    A single instance is created at application startup and handed to the
    components that need it (the lifecycle agent and, through it, the
    WebSocket layer).
    """

    def __init__(self, stripes: int = DEFAULT_LOCK_STRIPES):
        if stripes < 1:
            raise ValueError("stripes must be >= 1")
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(stripes)]
        self._editors: Dict[str, Set[str]] = {}
        # Designs with a delete in flight: joins are refused until released
        self._deleting: Set[str] = set()

    def _lock_for(self, design_id: str) -> threading.Lock:
        # crc32 rather than hash() so the stripe is stable across processes
        index = zlib.crc32(design_id.encode("utf-8")) % len(self._locks)
        return self._locks[index]

    # ==================== SESSION OPERATIONS ====================

    def join(self, design_id: str, user_id: str) -> FrozenSet[str]:
        """
        Add a user to the design's live-editor set.

        Joining twice is a no-op. Raises DesignConflictError while the design
        is being deleted. Returns the editor set after the join.
        """
        with self._lock_for(design_id):
            if design_id in self._deleting:
                raise DesignConflictError(
                    "The design is being deleted and cannot be opened for editing"
                )
            editors = self._editors.setdefault(design_id, set())
            editors.add(user_id)
            snapshot = frozenset(editors)
        logger.debug(f"User {user_id} joined session of design {design_id}")
        return snapshot

    def leave(self, design_id: str, user_id: str) -> FrozenSet[str]:
        """
        Remove a user from the design's live-editor set.

        The entry is removed entirely once the set is empty. Leaving a session
        the user is not part of is a no-op. Returns the remaining editors.
        """
        with self._lock_for(design_id):
            editors = self._editors.get(design_id)
            if editors is None:
                return frozenset()
            editors.discard(user_id)
            if not editors:
                del self._editors[design_id]
                return frozenset()
            snapshot = frozenset(editors)
        logger.debug(f"User {user_id} left session of design {design_id}")
        return snapshot

    def is_actively_edited(self, design_id: str) -> bool:
        with self._lock_for(design_id):
            return bool(self._editors.get(design_id))

    def editors(self, design_id: str) -> FrozenSet[str]:
        """Point-in-time snapshot of the users editing a design."""
        with self._lock_for(design_id):
            return frozenset(self._editors.get(design_id, ()))

    def drop_all(self, design_id: str) -> FrozenSet[str]:
        """
        Force-clear a design's entry, returning the users that were dropped.

        Used when a design disappears from under open sessions (administrative
        deletion, forced disconnect cleanup).
        """
        with self._lock_for(design_id):
            dropped = self._editors.pop(design_id, set())
        if dropped:
            logger.info(f"Dropped {len(dropped)} editing session(s) of design {design_id}")
        return frozenset(dropped)

    # ==================== DELETE RESERVATION ====================

    def reserve_for_delete(self, design_id: str) -> bool:
        """
        Atomically check that nobody is editing the design and block new joins.

        Returns False (and reserves nothing) when the design is being edited
        or another delete already holds the reservation. A successful
        reservation must always be followed by release_delete(); a delete
        that went through should call drop_all() before releasing.
        """
        with self._lock_for(design_id):
            if self._editors.get(design_id) or design_id in self._deleting:
                return False
            self._deleting.add(design_id)
            return True

    def release_delete(self, design_id: str) -> None:
        """Clear a delete reservation, whether or not the delete went through."""
        with self._lock_for(design_id):
            self._deleting.discard(design_id)

    # ==================== INTROSPECTION ====================

    @contextmanager
    def _all_locks(self):
        # Always taken in stripe order, so it cannot deadlock with itself
        for lock in self._locks:
            lock.acquire()
        try:
            yield
        finally:
            for lock in reversed(self._locks):
                lock.release()

    def active_designs(self) -> List[str]:
        """Design ids that currently have at least one editor."""
        with self._all_locks():
            return [design_id for design_id, editors in self._editors.items() if editors]

    def clear(self) -> None:
        """Forget every session (process shutdown)."""
        with self._all_locks():
            self._editors.clear()
            self._deleting.clear()

    def get_stats(self) -> Dict[str, int]:
        """Consistent snapshot across every design."""
        with self._all_locks():
            return {
                "active_designs": len(self._editors),
                "total_editors": sum(len(e) for e in self._editors.values()),
                "pending_deletes": len(self._deleting),
            }
