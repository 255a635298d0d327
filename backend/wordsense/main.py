from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/', methods=['GET', 'POST'])
def index():
    return jsonify({'message': 'Root working'})


@main.route('/health', methods=['GET'])
def health():
    service = current_app.extensions['wordsense']
    return jsonify({
        'status': 'ok',
        'sessions': len(service.registry),
        'embedding_cache': service.scorer.cache.stats(),
    })
