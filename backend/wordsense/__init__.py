from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

from wordsense.config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config, *, embedder=None, timers=None, words=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    origins = flask_app.config.get('CORS_ORIGINS', '*')
    CORS(flask_app, origins=origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    from wordsense.services.rounds import (
        BackgroundTimers,
        EmbeddingCache,
        HybridScorer,
        ManualTimers,
        RoundScheduler,
        RoundService,
        SentenceTransformerEmbedder,
        SessionRegistry,
        WordBank,
    )

    cfg = flask_app.config
    if embedder is None:
        embedder = SentenceTransformerEmbedder(cfg['EMBEDDING_MODEL'])
        if cfg.get('PRELOAD_EMBEDDING_MODEL') and not cfg.get('TESTING'):
            embedder.load()
    if timers is None:
        # Tests drive time by hand unless they opt into real timers
        if cfg.get('TESTING') and not cfg.get('ENABLE_SCHEDULER_IN_TESTS'):
            timers = ManualTimers()
        else:
            timers = BackgroundTimers(socketio, heartbeat_sec=int(cfg.get('TIMER_HEARTBEAT_SEC', 0)))
    if words is None:
        words = WordBank.from_file(cfg.get('WORDS_PATH'))

    from wordsense.socketio_events import broadcast_round_state

    cache = EmbeddingCache(embedder, max_entries=int(cfg.get('EMBEDDING_CACHE_MAX_ENTRIES', 0)))
    scorer = HybridScorer(cache)
    scheduler = RoundScheduler(
        timers,
        words,
        scorer,
        round_duration=cfg['ROUND_DURATION_SEC'],
        reset_delay=cfg['RESET_DELAY_SEC'],
        reveal_answer=cfg.get('REVEAL_ANSWER', True),
        listener=broadcast_round_state,
    )
    registry = SessionRegistry(scheduler, default_session_id=cfg['DEFAULT_SESSION_ID'])
    flask_app.extensions['wordsense'] = RoundService(registry, scheduler, scorer)

    # Import and register blueprints here
    from wordsense.main import main
    flask_app.register_blueprint(main)

    from wordsense.api.rounds import rounds
    flask_app.register_blueprint(rounds)

    from wordsense.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    return flask_app
