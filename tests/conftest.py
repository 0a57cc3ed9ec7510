import os
import sys
from unittest.mock import MagicMock

import pytest

# Ensure project root is on sys.path so 'playlist_relay' imports without installing
_TESTS_DIR = os.path.dirname(__file__)
_ROOT_DIR = os.path.abspath(os.path.join(_TESTS_DIR, os.pardir))
if _ROOT_DIR not in sys.path:
    sys.path.insert(0, _ROOT_DIR)

from playlist_relay import spotify_auth as spotify_auth_module
from playlist_relay.ai_client import AIClient
from playlist_relay.app import create_app
from playlist_relay.config_manager import Settings
from playlist_relay.spotify_client import SpotifyClient
from tests.support import stubs


@pytest.fixture
def settings():
    return Settings(
        spotify_client_id='test-client-id',
        spotify_client_secret='test-client-secret',
        spotify_redirect_uri='http://127.0.0.1:5000/callback',
        openai_api_key='sk-test',
        search_concurrency=1,
    )


@pytest.fixture
def spotify_oauth(monkeypatch):
    """Replaces spotipy's SpotifyOAuth; the instance is spotify_oauth.return_value."""
    oauth = MagicMock(name='SpotifyOAuth')
    monkeypatch.setattr(spotify_auth_module, 'SpotifyOAuth', oauth)
    return oauth


@pytest.fixture
def client_credentials(monkeypatch):
    """Replaces spotipy's SpotifyClientCredentials."""
    credentials = MagicMock(name='SpotifyClientCredentials')
    monkeypatch.setattr(spotify_auth_module, 'SpotifyClientCredentials', credentials)
    return credentials


@pytest.fixture
def spotify_api():
    """Fake spotipy.Spotify behind every SpotifyClient the app builds."""
    return stubs.fake_spotify()


@pytest.fixture
def openai_client():
    return stubs.openai_stub('Song One - Artist One\nSong Two - Artist Two')


@pytest.fixture
def app(settings, spotify_api, openai_client):
    return create_app(
        settings,
        ai=AIClient.from_settings(settings, openai_client=openai_client),
        client_factory=lambda token: SpotifyClient(token, sp=spotify_api),
    )


@pytest.fixture
def client(app):
    return app.test_client()
