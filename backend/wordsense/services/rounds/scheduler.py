import heapq
import itertools
import logging
import time
from typing import Callable, List, Optional

from wordsense.models import RoundSession, RoundState
from .embeddings import EmbeddingProviderError

logger = logging.getLogger(__name__)


class TimerHandle:
    def __init__(self, label: str, delay: float, deadline: float) -> None:
        self.label = label
        self.delay = delay
        self.deadline = deadline
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def armed(self) -> bool:
        return not (self.cancelled or self.fired)

    def __repr__(self):
        return f"<TimerHandle {self.label} deadline={self.deadline:.2f} armed={self.armed}>"


class BackgroundTimers:
    """Runs each timer as a Socket.IO background task.

    The worker sleeps in steps of at most ``poll_sec`` and stops early once
    the handle is cancelled, so a superseded round timer does not linger.
    """

    def __init__(self, socketio, heartbeat_sec: float = 0, poll_sec: float = 1.0) -> None:
        self.socketio = socketio
        self.heartbeat_sec = heartbeat_sec
        self.poll_sec = poll_sec

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay: float, callback: Callable[[], None], label: str = 'timer') -> TimerHandle:
        handle = TimerHandle(label, delay, self.now() + delay)
        self.socketio.start_background_task(self._worker, handle, callback)
        return handle

    def _worker(self, handle: TimerHandle, callback: Callable[[], None]) -> None:
        hb = self.heartbeat_sec
        next_beat = hb if hb and hb > 0 else None
        slept = 0.0
        while slept < handle.delay and not handle.cancelled:
            step = min(self.poll_sec, handle.delay - slept)
            if next_beat is not None:
                step = min(step, next_beat - slept)
            time.sleep(step)
            slept += step
            if next_beat is not None and slept >= next_beat:
                logger.info(f"[timer-heartbeat] {handle.label} remaining={max(0, handle.delay - slept)}s")
                next_beat += hb
        if handle.cancelled:
            logger.debug(f"[timer-abort] {handle.label} cancelled")
            return
        handle.fired = True
        try:
            callback()
        except Exception:
            logger.exception(f"[timer-error] {handle.label}")


class ManualTimers:
    """Virtual clock for tests: nothing fires until ``advance`` is called."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: List = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None], label: str = 'timer') -> TimerHandle:
        handle = TimerHandle(label, delay, self._now + delay)
        heapq.heappush(self._queue, (handle.deadline, next(self._seq), handle, callback))
        return handle

    def advance(self, seconds: float) -> None:
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            deadline, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = max(self._now, deadline)
            handle.fired = True
            callback()
        self._now = target

    def pending(self) -> List[TimerHandle]:
        return [entry[2] for entry in sorted(self._queue) if entry[2].armed]


class RoundScheduler:
    """Round state machine: ACTIVE -> RESOLVING -> ACTIVE, forever.

    Callers mutate a session only while holding ``session.lock``. Every
    timer remembers the round it was armed for and does nothing once that
    round is over, and arming a timer cancels the previous one, so a
    session never has more than one live timer.
    """

    def __init__(self, timers, words, scorer, round_duration: float, reset_delay: float,
                 reveal_answer: bool = True, listener: Optional[Callable] = None) -> None:
        self.timers = timers
        self.words = words
        self.scorer = scorer
        self.round_duration = round_duration
        self.reset_delay = reset_delay
        self.reveal_answer = reveal_answer
        self.listener = listener

    def now(self) -> float:
        return self.timers.now()

    def prepare_round(self):
        """Pick the next word and embed its context sentence.

        Suspends on the embedding provider; never call with a session lock held.
        """
        word = self.words.pick()
        return word, self.scorer.target_embedding(word)

    def begin_round(self, session: RoundSession) -> None:
        session.state = RoundState.ACTIVE
        session.start_time = self.now()
        self._arm(session, self.round_duration, self._on_round_timeout, 'round-end')
        logger.info(
            f"[round-start] session={session.session_id} round={session.round_id} "
            f"answer={session.target_word.secret_word}"
        )
        self.publish(session, 'round_started')

    def end_round(self, session: RoundSession, reason: str) -> bool:
        if not session.round_active:
            return False
        session.state = RoundState.RESOLVING
        self._arm(session, self.reset_delay, self._on_reset, 'next-word')
        logger.info(f"[round-end] session={session.session_id} round={session.round_id} reason={reason}")
        self.publish(session, 'round_ended', reason=reason)
        return True

    def _arm(self, session: RoundSession, delay: float, fire, label: str) -> None:
        if session.pending_timer is not None:
            session.pending_timer.cancel()
        round_id = session.round_id
        session.pending_timer = self.timers.call_later(
            delay,
            lambda: fire(session, round_id),
            f"{label} session={session.session_id} round={round_id}",
        )
        logger.debug(f"[timer-set] {label} session={session.session_id} round={round_id} delay={delay}s")

    def _is_stale(self, session: RoundSession, round_id: int, expected: RoundState) -> bool:
        if session.round_id != round_id or session.state is not expected:
            logger.info(
                f"[timer-abort] session={session.session_id} expected_round={round_id} "
                f"actual_round={session.round_id} state={session.state.value}"
            )
            return True
        return False

    def _on_round_timeout(self, session: RoundSession, round_id: int) -> None:
        with session.lock:
            if self._is_stale(session, round_id, RoundState.ACTIVE):
                return
            session.pending_timer = None
            self.end_round(session, 'timeout')

    def _on_reset(self, session: RoundSession, round_id: int) -> None:
        with session.lock:
            if self._is_stale(session, round_id, RoundState.RESOLVING):
                return
            session.pending_timer = None

        try:
            word, embedding = self.prepare_round()
        except EmbeddingProviderError:
            logger.exception(f"[round-retry] session={session.session_id} next word setup failed")
            with session.lock:
                if not self._is_stale(session, round_id, RoundState.RESOLVING):
                    self._arm(session, self.reset_delay, self._on_reset, 'next-word')
            return

        with session.lock:
            if self._is_stale(session, round_id, RoundState.RESOLVING):
                return
            session.assign_word(word, embedding)
            self.begin_round(session)

    def describe(self, session: RoundSession):
        with session.lock:
            return session.to_dict(self.now(), self.round_duration, self.reveal_answer)

    def publish(self, session: RoundSession, event: str, **extra) -> None:
        if self.listener is None:
            return
        payload = self.describe(session)
        payload.update(extra, event=event, sessionId=session.session_id)
        try:
            self.listener(session.session_id, payload)
        except Exception:
            logger.exception(f"[publish-error] session={session.session_id} event={event}")
