import random
import re
from typing import Optional

import numpy as np

from wordsense.models import WordEntry
from .similarity import cosine_similarity

EXACT_SCORE = 100.0
RELATED_BASE = 92.0
RELATED_JITTER = 5.0
MIN_SEMANTIC_CONFIDENCE = 0.80
SEMANTIC_FLOOR = 0.82
SEMANTIC_EXPONENT = 1.4
MIN_SCORE = 0.01
MAX_SCORE = 99.99

THAI_CONSONANT = re.compile(r'[ก-ฮ]')
SINGLE_CHAR_REPEAT = re.compile(r'^(.)\1+$')

GUESS_TEMPLATE = 'คำที่มีความหมายว่า {guess}'


def normalize_guess(text: str) -> str:
    return (text or '').strip().lower()


def context_sentence(word: WordEntry) -> str:
    """Sentence embedded as the round target: related words plus the answer."""
    return f"คำนี้เกี่ยวกับ {', '.join(word.related_words)} และมีความหมายว่า {word.secret_word}"


def is_valid_structure(guess: str) -> bool:
    if not guess:
        return False
    if not THAI_CONSONANT.search(guess):
        return False
    if len(guess) < 2:
        return False
    if SINGLE_CHAR_REPEAT.match(guess):
        return False
    return True


def rescale_similarity(similarity: float) -> float:
    scaled = max(0.0, (similarity - SEMANTIC_FLOOR) / (1 - SEMANTIC_FLOOR))
    score = (scaled ** SEMANTIC_EXPONENT) * 100
    score = min(max(score, MIN_SCORE), MAX_SCORE)
    return round(score, 2)


class HybridScorer:
    """Layered guess scoring.

    ``score`` returns a percentage in [0, 100] or None when the guess is
    rejected (nonsense, or not semantically close enough). Layers run in
    order and stop at the first that applies; only the last one touches
    the embedding provider.
    """

    def __init__(self, cache, rng: Optional[random.Random] = None) -> None:
        self.cache = cache
        self.rng = rng or random.Random()

    def target_embedding(self, word: WordEntry) -> np.ndarray:
        return self.cache.get_embedding(context_sentence(word))

    def score(self, guess: str, target: WordEntry, target_embedding) -> Optional[float]:
        guess = normalize_guess(guess)
        secret = normalize_guess(target.secret_word)

        if guess == secret:
            return EXACT_SCORE

        if not is_valid_structure(guess):
            return None

        related = {normalize_guess(w) for w in target.related_words}
        if guess in related:
            return round(RELATED_BASE + self.rng.random() * RELATED_JITTER, 2)

        guess_embedding = self.cache.get_embedding(GUESS_TEMPLATE.format(guess=guess))
        similarity = cosine_similarity(guess_embedding, target_embedding)
        if similarity < MIN_SEMANTIC_CONFIDENCE:
            return None
        return rescale_similarity(similarity)
