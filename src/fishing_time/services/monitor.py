"""Lifecycle monitor that completes sessions once their time runs out."""

import asyncio
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from fishing_time.domain.errors import SessionNotFoundError, StoreUnavailableError
from fishing_time.domain.sessions import SessionRecord, SessionStatus
from fishing_time.services.sessions import SessionRepository
from fishing_time.services.timing import session_remaining

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _completion_key(session: SessionRecord) -> datetime:
    return session.completed_at or session.end_time


@dataclass
class TickResult:
    """Outcome of one reconciliation pass."""

    now: datetime
    still_open: int
    completed: list[SessionRecord] = field(default_factory=list)
    retrying: list[int] = field(default_factory=list)


@dataclass
class SessionMonitor:
    """Owns the active/completed working sets and the periodic tick.

    Only ``tick`` and ``refresh`` replace the working sets. Both hold
    ``_lock`` while swapping state, never while talking to the store.
    ``_tick_lock`` serializes whole ticks so an expired session is written
    once even when a forced tick overlaps the scheduled one.
    """

    repository: SessionRepository
    tick_interval_seconds: float = 1.0
    refresh_interval_seconds: float = 5.0
    clock: Callable[[], datetime] = _utcnow
    tick_count: int = field(default=0, init=False)
    last_tick_at: datetime | None = field(default=None, init=False)
    last_refresh_at: datetime | None = field(default=None, init=False)
    _active: dict[int, SessionRecord] = field(default_factory=dict, init=False)
    _completed: list[SessionRecord] = field(default_factory=list, init=False)
    _reconciled: dict[int, SessionRecord] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)
    _tick_lock: threading.Lock = field(default_factory=threading.Lock, init=False)
    _task: asyncio.Task[None] | None = field(default=None, init=False)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def active_sessions(self) -> list[SessionRecord]:
        """Return sessions not yet reconciled as completed."""
        with self._lock:
            return list(self._active.values())

    def completed_sessions(self) -> list[SessionRecord]:
        """Return completed sessions, most recently completed first."""
        with self._lock:
            return list(self._completed)

    def refresh(self) -> None:
        """Reload both working sets from the store.

        Raises ``StoreUnavailableError`` if either fetch fails; the current
        sets are left untouched in that case. Completed is terminal, so a
        session seen completed by either fetch or by a tick that ran during
        the fetches never lands in the active set.
        """
        active = self.repository.list_active_sessions()
        completed = self.repository.list_completed_sessions()
        with self._lock:
            fetched_ids = {session.id for session in completed}
            late = [s for s in self._reconciled.values() if s.id not in fetched_ids]
            merged = list(completed)
            if late:
                merged = sorted(merged + late, key=_completion_key, reverse=True)
            done_ids = fetched_ids | set(self._reconciled)
            self._active = {s.id: s for s in active if s.id not in done_ids}
            active_count = len(self._active)
            self._completed = merged
            self._reconciled = {}
            self.last_refresh_at = self.clock()
        logger.debug(
            "Refreshed sessions: %s active, %s completed",
            active_count,
            len(merged),
        )

    def tick(self, now: datetime | None = None) -> TickResult:
        """Run one reconciliation pass against a single clock reading."""
        with self._tick_lock:
            return self._tick(now or self.clock())

    def _tick(self, now: datetime) -> TickResult:
        with self._lock:
            snapshot = list(self._active.values())

        expired = sorted(
            (s for s in snapshot if session_remaining(s, now) == 0),
            key=lambda s: (s.end_time, s.id),
        )
        result = TickResult(now=now, still_open=len(snapshot) - len(expired))
        dropped: list[int] = []
        for session in expired:
            try:
                updated = self.repository.update_status(
                    session.id, SessionStatus.COMPLETED
                )
            except StoreUnavailableError as exc:
                logger.warning(
                    "Could not complete session %s, retrying next tick: %s",
                    session.id,
                    exc,
                )
                result.retrying.append(session.id)
                continue
            except SessionNotFoundError:
                logger.warning("Session %s vanished from the store", session.id)
                dropped.append(session.id)
                continue
            except Exception:
                logger.exception("Failed to complete session %s", session.id)
                result.retrying.append(session.id)
                continue
            logger.info("Session %s completed at %s", session.id, now.isoformat())
            result.completed.append(updated)

        with self._lock:
            for session_id in dropped:
                self._active.pop(session_id, None)
            for updated in result.completed:
                self._active.pop(updated.id, None)
                self._reconciled[updated.id] = updated
                self._completed = [
                    s for s in self._completed if s.id != updated.id
                ]
                self._completed.insert(0, updated)
            self.tick_count += 1
            self.last_tick_at = now
        return result

    async def start(self) -> None:
        """Load the working sets and schedule the periodic tick."""
        if self.running:
            return
        try:
            await asyncio.to_thread(self.refresh)
        except StoreUnavailableError:
            logger.warning("Initial session fetch failed, will retry on schedule")
        self._task = asyncio.create_task(self._run(), name="session-monitor")
        logger.info(
            "Session monitor started (tick=%ss, refresh=%ss)",
            self.tick_interval_seconds,
            self.refresh_interval_seconds,
        )

    async def stop(self) -> None:
        """Cancel the tick; an in-flight store write still runs to completion."""
        task = self._task
        if task is None:
            return
        self._task = None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
        logger.info("Session monitor stopped after %s ticks", self.tick_count)

    async def __aenter__(self) -> "SessionMonitor":
        await self.start()
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.stop()

    def _refresh_due(self, now: datetime) -> bool:
        if self.last_refresh_at is None:
            return True
        elapsed = (now - self.last_refresh_at).total_seconds()
        return elapsed >= self.refresh_interval_seconds

    async def _run(self) -> None:
        while True:
            try:
                if self._refresh_due(self.clock()):
                    try:
                        await asyncio.to_thread(self.refresh)
                    except StoreUnavailableError as exc:
                        logger.warning("Periodic session fetch failed: %s", exc)
                await asyncio.to_thread(self.tick)
            except Exception:
                logger.exception("Session monitor tick failed")
            await asyncio.sleep(self.tick_interval_seconds)
