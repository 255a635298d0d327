import json
import logging
import random
from pathlib import Path
from typing import List, Optional, Sequence

from wordsense.models import WordEntry

logger = logging.getLogger(__name__)

BUNDLED_WORDS = Path(__file__).resolve().parents[2] / 'data' / 'words.json'


class WordBank:
    """Immutable word list; one entry is drawn uniformly per round."""

    def __init__(self, entries: Sequence[WordEntry], rng: Optional[random.Random] = None) -> None:
        if not entries:
            raise ValueError('Word dataset is empty')
        self.entries: List[WordEntry] = list(entries)
        self.rng = rng or random.Random()

    @classmethod
    def from_file(cls, path=None, rng=None):
        path = Path(path) if path else BUNDLED_WORDS
        with open(path, encoding='utf-8') as fh:
            raw = json.load(fh)
        entries = [WordEntry.from_dict(item) for item in raw]
        logger.info(f"[words] loaded {len(entries)} entries from {path}")
        return cls(entries, rng=rng)

    def pick(self) -> WordEntry:
        return self.entries[self.rng.randrange(len(self.entries))]

    def __len__(self) -> int:
        return len(self.entries)
