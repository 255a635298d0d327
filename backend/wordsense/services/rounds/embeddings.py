"""Embedding provider adapter and the process-wide embedding cache."""

import logging
import threading
from collections import OrderedDict
from concurrent.futures import Future
from typing import Dict, Optional

import numpy as np

logger = logging.getLogger(__name__)

QUERY_PREFIX = 'query: '


class EmbeddingProviderError(RuntimeError):
    """The embedding model failed; the caller may retry."""


class SentenceTransformerEmbedder:
    """Lazy-loaded sentence-transformers model.

    E5 models expect a ``query: `` prefix; the cache adds it, this class
    embeds whatever text it is given.
    """

    def __init__(self, model_name: str = 'intfloat/multilingual-e5-base') -> None:
        self.model_name = model_name
        self._model = None
        self._load_lock = threading.Lock()

    def load(self):
        with self._load_lock:
            if self._model is None:
                from sentence_transformers import SentenceTransformer

                logger.info(f"[embedder] loading model={self.model_name}")
                self._model = SentenceTransformer(self.model_name)
                logger.info(f"[embedder] model ready={self.model_name}")
        return self._model

    def embed(self, text: str) -> np.ndarray:
        try:
            model = self.load()
            vector = model.encode(text, normalize_embeddings=True)
        except Exception as exc:
            raise EmbeddingProviderError(f"Embedding failed for model {self.model_name}: {exc}") from exc
        return np.asarray(vector, dtype=np.float32)


class EmbeddingCache:
    """Memoizes provider embeddings by exact input text.

    Concurrent misses for the same text share one provider call. With
    ``max_entries`` 0 nothing is ever evicted; otherwise the least recently
    used entry goes first.
    """

    def __init__(self, embedder, max_entries: int = 0) -> None:
        self.embedder = embedder
        self.max_entries = max_entries
        self.hits = 0
        self.misses = 0
        self._data: "OrderedDict[str, np.ndarray]" = OrderedDict()
        self._inflight: Dict[str, Future] = {}
        self._lock = threading.Lock()

    def get_embedding(self, text: str) -> np.ndarray:
        owner = False
        with self._lock:
            cached = self._data.get(text)
            if cached is not None:
                self._data.move_to_end(text)
                self.hits += 1
                return cached
            future = self._inflight.get(text)
            if future is None:
                future = Future()
                self._inflight[text] = future
                self.misses += 1
                owner = True

        if not owner:
            return future.result()

        try:
            vector = self.embedder.embed(QUERY_PREFIX + text)
        except Exception as exc:
            logger.exception(f"[embedding-miss] provider failed text={text!r}")
            error = exc if isinstance(exc, EmbeddingProviderError) else EmbeddingProviderError(str(exc))
            with self._lock:
                self._inflight.pop(text, None)
            future.set_exception(error)
            if error is exc:
                raise
            raise error from exc
        except BaseException as exc:
            # Interrupted (KeyboardInterrupt, GreenletExit); waiters must not hang
            with self._lock:
                self._inflight.pop(text, None)
            future.set_exception(EmbeddingProviderError(f"Embedding interrupted: {exc!r}"))
            raise

        vector = np.asarray(vector, dtype=np.float32)
        vector.setflags(write=False)
        with self._lock:
            self._data[text] = vector
            self._evict()
            self._inflight.pop(text, None)
        future.set_result(vector)
        return vector

    def _evict(self) -> None:
        if not self.max_entries:
            return
        while len(self._data) > self.max_entries:
            self._data.popitem(last=False)

    def peek(self, text: str) -> Optional[np.ndarray]:
        with self._lock:
            return self._data.get(text)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def stats(self):
        with self._lock:
            return {
                'size': len(self._data),
                'max_entries': self.max_entries,
                'hits': self.hits,
                'misses': self.misses,
                'inflight': len(self._inflight),
            }
