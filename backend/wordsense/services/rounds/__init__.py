"""Round domain services: embeddings, scoring, timers and sessions.

This package holds the game mechanics; HTTP routes and socket handlers
import from here and stay free of round logic.
"""

from .embeddings import EmbeddingCache, EmbeddingProviderError, SentenceTransformerEmbedder
from .play import InvalidGuessInput, RoundService
from .registry import SessionRegistry
from .scheduler import BackgroundTimers, ManualTimers, RoundScheduler, TimerHandle
from .scoring import HybridScorer
from .similarity import cosine_similarity
from .words import WordBank

__all__ = [
    'BackgroundTimers',
    'EmbeddingCache',
    'EmbeddingProviderError',
    'HybridScorer',
    'InvalidGuessInput',
    'ManualTimers',
    'RoundScheduler',
    'RoundService',
    'SentenceTransformerEmbedder',
    'SessionRegistry',
    'TimerHandle',
    'WordBank',
    'cosine_similarity',
]
