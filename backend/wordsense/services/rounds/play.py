import logging

from .scoring import EXACT_SCORE, normalize_guess

logger = logging.getLogger(__name__)


class InvalidGuessInput(ValueError):
    """Guess request without a guess or a player name."""


class RoundService:
    """Guess submission and state queries on top of the registry.

    A guess is accepted under the session lock, scored outside it (the
    semantic layer may wait on the embedding provider) and committed under
    the lock again. The target and its embedding are captured at acceptance,
    so a round that turns over mid-scoring never sees the late result.
    """

    def __init__(self, registry, scheduler, scorer) -> None:
        self.registry = registry
        self.scheduler = scheduler
        self.scorer = scorer

    def submit_guess(self, session_id, guess, player_name):
        if not isinstance(guess, str) or not guess.strip():
            raise InvalidGuessInput('Missing data')
        if not isinstance(player_name, str) or not player_name.strip():
            raise InvalidGuessInput('Missing data')

        session = self.registry.get_or_create(session_id)
        key = normalize_guess(guess)

        with session.lock:
            # Repeats of this round's guesses are answered even after it ended
            existing = session.used_guesses.get(key)
            if existing is not None:
                return _duplicate(existing)
            if not session.round_active:
                return {'waiting': True}
            round_id = session.round_id
            target = session.target_word
            target_embedding = session.target_embedding

        percentage = self.scorer.score(key, target, target_embedding)

        if percentage is None:
            logger.info(f"[guess] session={session.session_id} player={player_name} guess={key!r} rejected")
            return {'correct': False, 'unknown': True, 'percentage': 0}

        with session.lock:
            if session.round_id == round_id:
                existing = session.used_guesses.get(key)
                if existing is not None:
                    return _duplicate(existing)
            if session.round_id != round_id or not session.round_active:
                logger.info(
                    f"[guess-late] session={session.session_id} player={player_name} "
                    f"guess={key!r} round={round_id} now={session.round_id}"
                )
                return {'waiting': True, 'late': True, 'percentage': percentage}

            session.record_guess(key, player_name, percentage)
            logger.info(f"[guess] session={session.session_id} player={player_name} guess={key!r} score={percentage}")

            if key == normalize_guess(target.secret_word):
                self.scheduler.end_round(session, 'solved')
                return {
                    'correct': True,
                    'answer': target.secret_word,
                    'winner': player_name,
                    'percentage': EXACT_SCORE,
                }

            self.scheduler.publish(session, 'guess', player=player_name)
            return {'correct': False, 'percentage': percentage}

    def current_state(self, session_id):
        session = self.registry.get_or_create(session_id)
        return self.scheduler.describe(session)


def _duplicate(record):
    return {'duplicate': True, 'by': record.player, 'percentage': record.percentage}
