"""Timer registry - a user's live timer list.

The registry holds one user's RUNNING and PAUSED sessions and recomputes
the displayed elapsed time of RUNNING ones on every tick. PAUSED sessions
are computed once, when they enter the registry or change state, so their
clock stands still. Displayed time of a RUNNING session never goes
backwards between ticks.

Only ``run`` reads the clock; every other method takes ``now``.
"""
import asyncio
import inspect
import logging
from datetime import datetime
from typing import Awaitable, Callable, Iterable, Optional, Union

from worktrack.models.time_session import SessionStatus, TimeSession, TimerView
from worktrack.services.session_state import live_elapsed
from worktrack.utils.duration import format_duration, utcnow

logger = logging.getLogger(__name__)

TickCallback = Callable[[list[TimerView]], Union[None, Awaitable[None]]]


class TimerRegistry:
    """Live view over one user's non-terminal sessions."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        self._sessions: dict[str, TimeSession] = {}
        self._views: dict[str, TimerView] = {}
        self._stopped = asyncio.Event()

    def _view(self, session: TimeSession, now: datetime) -> TimerView:
        elapsed = live_elapsed(session, now)
        previous = self._views.get(session.id)
        if (
            previous is not None
            and session.status is SessionStatus.RUNNING
            and previous.status is SessionStatus.RUNNING
        ):
            elapsed = max(elapsed, previous.elapsed_ms)

        return TimerView(
            session_id=session.id,
            project_id=session.project_id,
            description=session.description,
            status=session.status,
            elapsed_ms=elapsed,
            display=format_duration(elapsed),
        )

    def load(self, sessions: Iterable[TimeSession], now: datetime) -> list[TimerView]:
        """
        Replace the tracked set with the user's live sessions.

        Sessions of other users and finished sessions are ignored. Sessions
        already tracked keep their displayed time if nothing changed.
        """
        fresh = {
            session.id: session
            for session in sessions
            if session.user_id == self.user_id and not session.is_terminal
        }

        for session_id in list(self._sessions):
            if session_id not in fresh:
                self.remove(session_id)

        for session in fresh.values():
            self.apply(session, now)

        return self.views()

    def apply(self, session: TimeSession, now: datetime) -> Optional[TimerView]:
        """
        Record a session's new state.

        A finished session leaves the registry. A PAUSED session's display is
        fixed here and not touched again until its next state change.
        """
        if session.user_id != self.user_id:
            return None

        if session.is_terminal:
            self.remove(session.id)
            return None

        known = self._sessions.get(session.id)
        self._sessions[session.id] = session
        if known is None or known.version != session.version or session.id not in self._views:
            self._views[session.id] = self._view(session, now)

        return self._views[session.id]

    def remove(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._views.pop(session_id, None)

    def tick(self, now: datetime) -> list[TimerView]:
        """Recompute RUNNING sessions at ``now``; PAUSED ones stay frozen."""
        for session_id, session in self._sessions.items():
            if session.status is SessionStatus.RUNNING:
                self._views[session_id] = self._view(session, now)

        return self.views()

    def views(self) -> list[TimerView]:
        return [self._views[session_id] for session_id in self._sessions]

    def stop(self) -> None:
        self._stopped.set()

    async def run(
        self,
        on_tick: TickCallback,
        interval: float = 1.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """
        Tick until ``stop()`` is called, handing each snapshot to ``on_tick``.

        ``on_tick`` may be a plain function or a coroutine function.
        """
        self._stopped.clear()
        while not self._stopped.is_set():
            views = self.tick(clock())
            result = on_tick(views)
            if inspect.isawaitable(result):
                await result

            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

        logger.debug("Timer registry stopped", extra={"user_id": self.user_id})
