"""
Configuration manager for the AI Playlist Relay.
Reads API keys and runtime options once at startup into an immutable Settings object.
"""

import os
import json
import logging
from dataclasses import dataclass

from dotenv import load_dotenv

log = logging.getLogger(__name__)

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

CONFIG_FILE = os.path.join(_PROJECT_ROOT, 'config.json')

DEFAULT_SCOPES = (
    'user-read-private '
    'user-read-email '
    'user-library-read '
    'playlist-modify-public '
    'playlist-modify-private'
)

# Prefer environment variables for secrets. config.json is a read-only fallback.
ENV_MAP = {
    'spotify_client_id': 'SPOTIFY_CLIENT_ID',
    'spotify_client_secret': 'SPOTIFY_CLIENT_SECRET',
    'spotify_redirect_uri': 'SPOTIFY_REDIRECT_URI',
    'spotify_scopes': 'SPOTIFY_SCOPES',
    'openai_api_key': 'OPENAI_API_KEY',
    'openai_model': 'OPENAI_MODEL',
    'suggestion_count': 'SUGGESTION_COUNT',
    'frontend_url': 'FRONTEND_URL',
    'cors_origins': 'ALLOWED_ORIGINS',
    'search_concurrency': 'SEARCH_CONCURRENCY',
    'requests_timeout': 'SPOTIFY_REQUESTS_TIMEOUT',
    'log_level': 'LOG_LEVEL',
    'host': 'HOST',
    'port': 'PORT',
}


@dataclass(frozen=True)
class Settings:
    spotify_client_id: str = ''
    spotify_client_secret: str = ''
    spotify_redirect_uri: str = 'http://127.0.0.1:5000/callback'
    spotify_scopes: str = DEFAULT_SCOPES
    openai_api_key: str = ''
    openai_model: str = 'gpt-4'
    suggestion_count: int = 5
    frontend_url: str = ''
    cors_origins: str = '*'
    search_concurrency: int = 4
    requests_timeout: int = 10
    log_level: str = 'INFO'
    host: str = '127.0.0.1'
    port: int = 5000

    @property
    def spotify_configured(self):
        return bool(self.spotify_client_id and self.spotify_client_secret)

    @property
    def openai_configured(self):
        return bool(self.openai_api_key)

    def is_configured(self):
        """Check if both Spotify credentials and an OpenAI key are present."""
        return self.spotify_configured and self.openai_configured

    @property
    def origins(self):
        """CORS origins as flask-cors expects them."""
        if self.cors_origins.strip() == '*':
            return '*'
        return [o.strip() for o in self.cors_origins.split(',') if o.strip()]


_INT_FIELDS = ('suggestion_count', 'search_concurrency', 'requests_timeout', 'port')


def load_config(path=CONFIG_FILE):
    """Load configuration from config.json."""
    if os.path.exists(path):
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            log.warning(f'Ignoring unreadable config file {path}: {e}')
            return {}
    return {}


def get_config_value(key, default=None, config=None):
    """Get a single config value (environment first, then config.json)."""
    env_key = ENV_MAP.get(key)
    if env_key and os.environ.get(env_key):
        return os.environ.get(env_key).strip()
    if config is None:
        config = load_config()
    return config.get(key, default)


def load_settings(config_path=CONFIG_FILE, dotenv_path=None):
    """Build the process-wide Settings. Called once at startup."""
    load_dotenv(dotenv_path or os.path.join(_PROJECT_ROOT, '.env'))
    config = load_config(config_path)
    defaults = Settings()
    values = {}
    for key in ENV_MAP:
        default = getattr(defaults, key)
        value = get_config_value(key, default, config=config)
        if key in _INT_FIELDS:
            try:
                value = int(value)
            except (TypeError, ValueError):
                log.warning(f'Invalid integer for {key}: {value!r}, using {default}')
                value = default
        elif value is None:
            value = default
        elif key == 'log_level':
            value = str(value).strip().upper()
            # getLevelName maps known names to ints and anything else to a string
            if not isinstance(logging.getLevelName(value), int):
                log.warning(f'Invalid log level {value!r}, using {default}')
                value = default
        values[key] = value
    return Settings(**values)
