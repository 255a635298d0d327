import random

import pytest

from conftest import CAT, unit, with_similarity
from wordsense.models import WordEntry
from wordsense.services.rounds import HybridScorer
from wordsense.services.rounds.scoring import (
    context_sentence,
    is_valid_structure,
    normalize_guess,
    rescale_similarity,
)


@pytest.fixture()
def target_embedding():
    return unit(0)


def test_exact_match_scores_100_regardless_of_case_and_spacing(scorer, target_embedding, embedder):
    word = WordEntry('Cat', ('kitty',))
    assert scorer.score('  cAT ', word, target_embedding) == 100
    assert scorer.score('แมว', CAT, target_embedding) == 100
    assert embedder.calls == []


@pytest.mark.parametrize('guess', ['', '   ', 'hello', 'xyxyxy', 'ก', 'กกกก', '1234', 'ๆๆ'])
def test_structural_filter_rejects_without_calling_provider(scorer, target_embedding, embedder, guess):
    assert scorer.score(guess, CAT, target_embedding) is None
    assert embedder.calls == []


def test_structure_rules():
    assert is_valid_structure('หมา')
    assert is_valid_structure('a ก')
    assert not is_valid_structure('ข')
    assert not is_valid_structure('ขขข')
    assert not is_valid_structure('abc')


def test_related_word_scores_stay_in_jitter_band(cache, target_embedding, embedder):
    for seed in range(50):
        scorer = HybridScorer(cache, rng=random.Random(seed))
        score = scorer.score('เหมียว', CAT, target_embedding)
        assert 92 <= score <= 97
        assert score == round(score, 2)
    assert embedder.calls == []


def test_related_word_match_ignores_case():
    word = WordEntry('ดนตรี', ('Jazz ดนตรี',))
    scorer = HybridScorer(cache=None, rng=random.Random(1))
    assert 92 <= scorer.score('jazz ดนตรี', word, unit(0)) <= 97


def test_semantic_layer_rejects_below_confidence(scorer, target_embedding, embedder):
    embedder.set_guess('ลูกแมว', with_similarity(0.79))
    assert scorer.score('ลูกแมว', CAT, target_embedding) is None
    assert len(embedder.calls_for('คำที่มีความหมายว่า ลูกแมว')) == 1


def test_semantic_layer_between_thresholds_gives_floor_score(scorer, target_embedding, embedder):
    embedder.set_guess('ขนนุ่ม', with_similarity(0.81))
    assert scorer.score('ขนนุ่ม', CAT, target_embedding) == 0.01


def test_semantic_layer_rescales_close_guesses(scorer, target_embedding, embedder):
    embedder.set_guess('ลูกแมว', with_similarity(0.91))
    assert scorer.score('ลูกแมว', CAT, target_embedding) == pytest.approx(37.89, abs=0.011)


def test_unrelated_guess_is_rejected(scorer, target_embedding):
    assert scorer.score('รถไฟ', CAT, target_embedding) is None


def test_semantic_score_uses_given_embedding_not_cached_target(scorer, embedder):
    embedder.set_guess('หมา', with_similarity(0.95))
    assert scorer.score('หมา', CAT, unit(0)) is not None
    assert scorer.score('หมา', CAT, unit(7)) is None


@pytest.mark.parametrize('similarity', [0.80, 0.8123, 0.85, 0.9, 0.95, 0.99, 0.9999, 1.0])
def test_rescaled_scores_are_bounded(similarity):
    score = rescale_similarity(similarity)
    assert 0.01 <= score <= 99.99


def test_rescale_is_monotonic():
    sims = [0.82 + i * 0.01 for i in range(19)]
    scores = [rescale_similarity(s) for s in sims]
    assert scores == sorted(scores)
    assert rescale_similarity(1.0) == 99.99


def test_context_sentence_lists_related_words_then_answer():
    assert context_sentence(CAT) == 'คำนี้เกี่ยวกับ เหมียว, สัตว์เลี้ยง และมีความหมายว่า แมว'


def test_normalize_guess():
    assert normalize_guess('  MeOw ') == 'meow'
    assert normalize_guess(None) == ''
