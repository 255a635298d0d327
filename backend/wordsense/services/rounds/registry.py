import logging
import threading
from typing import Dict, List, Optional

from wordsense.models import RoundSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Process-lifetime table of round sessions keyed by session id.

    Sessions are created on first use and never removed. Creating a session
    embeds its first word, so creation for one id is serialized by a
    per-id lock while other ids proceed independently.
    """

    def __init__(self, scheduler, default_session_id: str = 'studio-test') -> None:
        self.scheduler = scheduler
        self.default_session_id = default_session_id
        self._sessions: Dict[str, RoundSession] = {}
        self._creating: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def normalize_id(self, session_id) -> str:
        if session_id is None:
            return self.default_session_id
        session_id = str(session_id).strip()
        return session_id or self.default_session_id

    def get(self, session_id) -> Optional[RoundSession]:
        with self._lock:
            return self._sessions.get(self.normalize_id(session_id))

    def get_or_create(self, session_id=None) -> RoundSession:
        sid = self.normalize_id(session_id)
        with self._lock:
            session = self._sessions.get(sid)
            if session is not None:
                return session
            creating = self._creating.setdefault(sid, threading.Lock())

        with creating:
            try:
                return self._create(sid)
            finally:
                with self._lock:
                    if self._creating.get(sid) is creating:
                        del self._creating[sid]

    def _create(self, sid: str) -> RoundSession:
        with self._lock:
            session = self._sessions.get(sid)
            if session is not None:
                return session

        # Raises on provider failure; nothing is registered in that case.
        word, embedding = self.scheduler.prepare_round()
        session = RoundSession(
            session_id=sid,
            target_word=word,
            target_embedding=embedding,
            start_time=self.scheduler.now(),
        )
        with session.lock:
            with self._lock:
                existing = self._sessions.get(sid)
                if existing is not None:
                    return existing
                self._sessions[sid] = session
            logger.info(f"[session-new] session={sid}")
            self.scheduler.begin_round(session)
        return session

    def session_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id) -> bool:
        with self._lock:
            return self.normalize_id(session_id) in self._sessions
