"""
AI Playlist Relay: Flask backend
Keeps Spotify and OpenAI secrets on the server and exposes a small REST API:

- OAuth: /login, /callback, /refresh-token, /spotify-auth
- Catalog: /me, /liked-songs (caller's bearer token)
- Generation: /generate-playlist
    {tracks}                     -> AI suggestions only
    {likedSongs, accessToken}    -> suggestions saved as a new Spotify playlist

Every route is one request/response cycle; nothing is stored between requests.
"""

import logging
from urllib.parse import urlencode

from flask import Blueprint, Flask, current_app, jsonify, redirect, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from .ai_client import AIClient
from .config_manager import load_settings
from .errors import (BadRequestError, MissingCodeError, MissingTokenError, NotConfiguredError,
                     RelayError)
from .models import Track
from .playlist_service import PlaylistService
from .spotify_auth import SpotifyAuth
from .spotify_client import SpotifyClient, parse_bearer

log = logging.getLogger(__name__)

relay = Blueprint('relay', __name__)


def _ext():
    return current_app.extensions['playlist_relay']


def _settings():
    return _ext()['settings']


def _spotify_auth():
    auth = _ext()['spotify_auth']
    if not _settings().spotify_configured:
        raise NotConfiguredError('Spotify not configured')
    return auth


def _ai():
    ai = _ext()['ai']
    if ai.openai_client is None:
        raise NotConfiguredError('No AI provider configured')
    return ai


def _spotify_for_request():
    """Build a Spotify client from the Authorization header."""
    token = parse_bearer(request.headers.get('Authorization'))
    return _ext()['client_factory'](token)


def _tracks_from(payload, field):
    items = payload.get(field)
    if not isinstance(items, list):
        raise BadRequestError(f'"{field}" must be a list')
    tracks = [Track.from_payload(i) for i in items]
    tracks = [t for t in tracks if t.name]
    if not tracks:
        raise BadRequestError('No tracks provided')
    return tracks


# ═════════════════════════════════════════════════════════════════════════════
# AUTH ROUTES
# ═════════════════════════════════════════════════════════════════════════════

@relay.route('/health')
def health():
    return jsonify({'status': 'healthy', 'service': 'playlist-relay'})


@relay.route('/login')
def login():
    """Redirect the browser to Spotify's authorization page."""
    auth = _spotify_auth()
    return redirect(auth.build_login_redirect(state=request.args.get('state')))


@relay.route('/callback')
def callback():
    """Handle Spotify OAuth callback."""
    frontend_url = _settings().frontend_url
    error = request.args.get('error')
    if error:
        log.warning(f'Spotify authorization denied: {error}')
        if frontend_url:
            return redirect(f'{frontend_url}#{urlencode({"error": "auth_denied"})}')
        return jsonify({'error': 'auth_denied'}), 400

    code = request.args.get('code')
    if not code:
        raise MissingCodeError()
    token_info = _spotify_auth().authorization_code_exchange(code)

    if frontend_url:
        # Fragment, so the token never reaches the frontend's server logs.
        fragment = urlencode({k: token_info[k] for k in
                              ('access_token', 'refresh_token', 'expires_in', 'token_type')
                              if token_info.get(k) is not None})
        return redirect(f'{frontend_url}#{fragment}')
    return jsonify(token_info)


@relay.route('/refresh-token', methods=['POST'])
def refresh_token():
    """Get a fresh access token from a refresh token."""
    data = request.get_json(silent=True) or {}
    return jsonify(_spotify_auth().refresh_access_token(data.get('refresh_token')))


@relay.route('/spotify-auth')
def spotify_auth():
    """App-only token via client credentials."""
    return jsonify(_spotify_auth().client_credentials_auth())


# ═════════════════════════════════════════════════════════════════════════════
# CATALOG ROUTES
# ═════════════════════════════════════════════════════════════════════════════

@relay.route('/me')
def me():
    """Get the caller's Spotify profile."""
    with _spotify_for_request() as spotify:
        return jsonify(spotify.fetch_current_user())


@relay.route('/liked-songs')
def liked_songs():
    """Get the caller's saved tracks (first page only)."""
    limit = request.args.get('limit', 100, type=int)
    with _spotify_for_request() as spotify:
        tracks = spotify.fetch_liked_tracks(limit=limit)
    return jsonify([t.to_dict() for t in tracks])


# ═════════════════════════════════════════════════════════════════════════════
# GENERATION ROUTES
# ═════════════════════════════════════════════════════════════════════════════

@relay.route('/generate-playlist', methods=['POST'])
def generate_playlist():
    """Suggest tracks, and save them as a playlist when a Spotify token is sent."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise BadRequestError('Expected a JSON object')

    if 'likedSongs' in data:
        liked = _tracks_from(data, 'likedSongs')
        token = data.get('accessToken') or parse_bearer(request.headers.get('Authorization'))
        # Checked before the AI call so a 401 costs nothing upstream.
        if not isinstance(token, str) or not token.strip():
            raise MissingTokenError()
        result = _ext()['playlists'].generate(liked, token)
        return jsonify(result.to_dict())

    tracks = _tracks_from(data, 'tracks')
    recommendations = _ai().recommend(tracks)
    return jsonify({'recommendations': [
        {'name': t.name, 'artist': t.artist} for t in recommendations
    ]})


# ═════════════════════════════════════════════════════════════════════════════
# ERRORS
# ═════════════════════════════════════════════════════════════════════════════

def handle_relay_error(e):
    return jsonify({'error': e.message}), e.status_code


def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return e
    log.exception(f'Unhandled error: {e}')
    return jsonify({'error': 'Internal server error'}), 500


def create_app(settings=None, spotify_auth=None, ai=None, client_factory=None):
    """Application factory. Collaborators can be injected for tests."""
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level.upper())

    log.info(f'Spotify configured: {settings.spotify_configured}')
    log.info(f'OpenAI configured: {settings.openai_configured}')
    log.info(f'SPOTIFY_REDIRECT_URI: {settings.spotify_redirect_uri}')

    spotify_auth = spotify_auth or SpotifyAuth.from_settings(settings)
    ai = ai or AIClient.from_settings(settings)
    client_factory = client_factory or (
        lambda token: SpotifyClient(token, requests_timeout=settings.requests_timeout))

    app = Flask(__name__)
    CORS(app, resources={r'/*': {'origins': settings.origins}})
    app.extensions['playlist_relay'] = {
        'settings': settings,
        'spotify_auth': spotify_auth,
        'ai': ai,
        'client_factory': client_factory,
        'playlists': PlaylistService.from_settings(settings, ai=ai, client_factory=client_factory),
    }
    app.register_blueprint(relay)
    app.register_error_handler(RelayError, handle_relay_error)
    app.register_error_handler(Exception, handle_unexpected_error)
    return app
