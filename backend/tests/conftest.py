import os
import sys
import threading
import zlib

import numpy as np
import pytest

# Ensure the backend root (containing the `wordsense` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from wordsense import create_app, socketio
from wordsense.models import WordEntry
from wordsense.services.rounds import (
    EmbeddingCache,
    EmbeddingProviderError,
    HybridScorer,
    ManualTimers,
    RoundScheduler,
    RoundService,
    SessionRegistry,
    WordBank,
)
from wordsense.services.rounds.scoring import GUESS_TEMPLATE, context_sentence

DIM = 64
ROUND_SEC = 300
RESET_SEC = 5

CAT = WordEntry('แมว', ('เหมียว', 'สัตว์เลี้ยง'))
DOG = WordEntry('สุนัข', ('หมา', 'เห่า'))


def unit(index, dim=DIM):
    vec = np.zeros(dim, dtype=np.float32)
    vec[index] = 1.0
    return vec


def with_similarity(cos, dim=DIM):
    """Unit vector whose cosine with unit(0) is ``cos``."""
    vec = np.zeros(dim, dtype=np.float32)
    vec[0] = cos
    vec[1] = np.sqrt(max(0.0, 1.0 - cos * cos))
    return vec


class FakeEmbedder:
    """Deterministic stand-in for the sentence-transformers model.

    Unknown texts map to a pseudo-random unit vector seeded from the text,
    which is nowhere near any registered vector.
    """

    def __init__(self):
        self.vectors = {}
        self.calls = []
        self.fail = False
        self.before_embed = None
        self._lock = threading.Lock()

    def set(self, text, vector):
        self.vectors[text] = np.asarray(vector, dtype=np.float32)

    def set_guess(self, guess, vector):
        self.set(GUESS_TEMPLATE.format(guess=guess), vector)

    def set_target(self, word, vector):
        self.set(context_sentence(word), vector)

    def calls_for(self, text):
        return [c for c in self.calls if c == 'query: ' + text]

    def embed(self, text):
        with self._lock:
            self.calls.append(text)
        if self.before_embed is not None:
            self.before_embed(text)
        if self.fail:
            raise EmbeddingProviderError('model offline')
        raw = text[len('query: '):] if text.startswith('query: ') else text
        if raw in self.vectors:
            return self.vectors[raw]
        rng = np.random.RandomState(zlib.crc32(raw.encode('utf-8')))
        vec = rng.normal(size=DIM).astype(np.float32)
        return vec / np.linalg.norm(vec)


class SequenceWords(WordBank):
    """Word bank that hands out entries in order, cycling."""

    def __init__(self, entries):
        super().__init__(entries)
        self._next = 0

    def pick(self):
        entry = self.entries[self._next % len(self.entries)]
        self._next += 1
        return entry


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = '*'
    ROUND_DURATION_SEC = ROUND_SEC
    RESET_DELAY_SEC = RESET_SEC
    DEFAULT_SESSION_ID = 'studio-test'
    EMBEDDING_MODEL = 'fake'
    EMBEDDING_CACHE_MAX_ENTRIES = 0
    PRELOAD_EMBEDDING_MODEL = False
    WORDS_PATH = None
    REVEAL_ANSWER = True
    TIMER_HEARTBEAT_SEC = 0


@pytest.fixture()
def embedder():
    fake = FakeEmbedder()
    fake.set_target(CAT, unit(0))
    fake.set_target(DOG, unit(5))
    return fake


@pytest.fixture()
def timers():
    return ManualTimers()


@pytest.fixture()
def words():
    return SequenceWords([CAT, DOG])


@pytest.fixture()
def cache(embedder):
    return EmbeddingCache(embedder)


@pytest.fixture()
def scorer(cache):
    return HybridScorer(cache)


@pytest.fixture()
def published():
    return []


@pytest.fixture()
def scheduler(timers, words, scorer, published):
    return RoundScheduler(
        timers, words, scorer,
        round_duration=ROUND_SEC,
        reset_delay=RESET_SEC,
        listener=lambda sid, payload: published.append((sid, payload)),
    )


@pytest.fixture()
def registry(scheduler):
    return SessionRegistry(scheduler, default_session_id='studio-test')


@pytest.fixture()
def service(registry, scheduler, scorer):
    return RoundService(registry, scheduler, scorer)


@pytest.fixture()
def flask_app(embedder, timers, words):
    application = create_app(TestConfig, embedder=embedder, timers=timers, words=words)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
