from flask import Blueprint, current_app, jsonify, request

from wordsense.services.rounds import EmbeddingProviderError, InvalidGuessInput

rounds = Blueprint('rounds', __name__)


def _service():
    return current_app.extensions['wordsense']


def _session_id(data):
    # Older clients send serverId
    return data.get('sessionId') or data.get('serverId')


@rounds.errorhandler(InvalidGuessInput)
def invalid_input(exc):
    return jsonify({'error': str(exc) or 'Missing data'}), 400


@rounds.errorhandler(EmbeddingProviderError)
def provider_unavailable(exc):
    current_app.logger.warning(f"[provider-error] {exc}")
    return jsonify({'error': 'Embedding service unavailable, try again', 'retryable': True}), 503


@rounds.route('/guess', methods=['POST'])
def submit_guess():
    data = request.get_json(silent=True) or {}
    result = _service().submit_guess(_session_id(data), data.get('guess'), data.get('playerName'))
    return jsonify(result)


@rounds.route('/current', methods=['POST'])
def current_round():
    data = request.get_json(silent=True) or {}
    return jsonify(_service().current_state(_session_id(data)))
