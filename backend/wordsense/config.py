import os


def _env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    PORT = int(os.environ.get('PORT', '3001'))
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    # Round timers (seconds)
    ROUND_DURATION_SEC = int(os.environ.get('ROUND_DURATION_SEC', '300'))
    RESET_DELAY_SEC = int(os.environ.get('RESET_DELAY_SEC', '5'))
    # Session id used when a request does not name one
    DEFAULT_SESSION_ID = os.environ.get('DEFAULT_SESSION_ID', 'studio-test')
    # Embeddings
    EMBEDDING_MODEL = os.environ.get('EMBEDDING_MODEL', 'intfloat/multilingual-e5-base')
    PRELOAD_EMBEDDING_MODEL = _env_flag('PRELOAD_EMBEDDING_MODEL', True)
    # 0 keeps every embedding for the process lifetime
    EMBEDDING_CACHE_MAX_ENTRIES = int(os.environ.get('EMBEDDING_CACHE_MAX_ENTRIES', '0'))
    # Word dataset; None uses the bundled list
    WORDS_PATH = os.environ.get('WORDS_PATH')
    # Include the current answer in /current responses
    REVEAL_ANSWER = _env_flag('REVEAL_ANSWER', True)
    # Optional: heartbeat interval for timer worker logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
