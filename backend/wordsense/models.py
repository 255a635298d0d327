import enum
import threading
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class WordEntry:
    secret_word: str
    related_words: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data):
        secret = (data.get('secretWord') or '').strip()
        if not secret:
            raise ValueError(f"Word entry without secretWord: {data!r}")
        related = tuple(w.strip() for w in data.get('relatedWords') or [] if w and w.strip())
        return cls(secret_word=secret, related_words=related)

    def to_dict(self):
        return {
            'secretWord': self.secret_word,
            'relatedWords': list(self.related_words),
        }


@dataclass(frozen=True)
class GuessRecord:
    player: str
    percentage: float

    def to_dict(self):
        return {
            'playerName': self.player,
            'percentage': self.percentage,
        }


class RoundState(enum.Enum):
    ACTIVE = 'active'
    RESOLVING = 'resolving'  # between round end and the next word


@dataclass
class RoundSession:
    """Mutable game state for one session id.

    All reads and writes go through ``lock``; timers and request threads
    touch the same object.
    """
    session_id: str
    target_word: WordEntry
    target_embedding: np.ndarray
    start_time: float
    state: RoundState = RoundState.ACTIVE
    round_id: int = 1
    used_guesses: Dict[str, GuessRecord] = field(default_factory=dict)
    leaderboard: Dict[str, float] = field(default_factory=dict)
    pending_timer: Optional[object] = None
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def round_active(self) -> bool:
        return self.state is RoundState.ACTIVE

    def assign_word(self, word: WordEntry, embedding: np.ndarray) -> None:
        # The only place the guess maps are cleared.
        self.target_word = word
        self.target_embedding = embedding
        self.used_guesses = {}
        self.leaderboard = {}
        self.round_id += 1

    def record_guess(self, key: str, player: str, percentage: float) -> GuessRecord:
        record = GuessRecord(player=player, percentage=percentage)
        self.used_guesses[key] = record
        best = self.leaderboard.get(player)
        if best is None or percentage > best:
            self.leaderboard[player] = percentage
        return record

    def time_left(self, now: float, duration: float) -> int:
        return int(max(0.0, duration - (now - self.start_time)))

    def to_dict(self, now: float, duration: float, reveal_answer: bool = True):
        return {
            'answer': self.target_word.secret_word if reveal_answer else None,
            'timeLeft': self.time_left(now, duration),
            'leaderboard': dict(self.leaderboard),
            'guesses': {k: v.to_dict() for k, v in self.used_guesses.items()},
            'active': self.round_active,
        }
