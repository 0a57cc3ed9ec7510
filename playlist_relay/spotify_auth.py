"""
Spotify credential exchange.
Talks to the accounts service through spotipy's auth managers so the frontend
never sees the client secret. Tokens are handed back to the caller and never
cached here: every manager gets a throwaway in-memory cache and is asked with
check_cache=False.
"""

import logging

import requests
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyClientCredentials, SpotifyOAuth, SpotifyOauthError

from .errors import MissingCodeError, MissingTokenError, NotConfiguredError, UpstreamAuthError

log = logging.getLogger(__name__)

AUTH_ERRORS = (SpotifyOauthError, requests.RequestException)


class SpotifyAuth:
    def __init__(self, client_id, client_secret, redirect_uri, scope='', requests_timeout=10):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scope = scope
        self.requests_timeout = requests_timeout

    @classmethod
    def from_settings(cls, settings, **kwargs):
        return cls(
            settings.spotify_client_id,
            settings.spotify_client_secret,
            settings.spotify_redirect_uri,
            scope=settings.spotify_scopes,
            requests_timeout=settings.requests_timeout,
            **kwargs,
        )

    def _ensure_configured(self):
        # spotipy refuses to build a manager without credentials
        if not (self.client_id and self.client_secret):
            raise NotConfiguredError('Spotify not configured')

    def _oauth(self, session, redirect_uri=None, scope=None):
        return SpotifyOAuth(
            client_id=self.client_id,
            client_secret=self.client_secret,
            redirect_uri=redirect_uri or self.redirect_uri,
            scope=scope if scope is not None else self.scope,
            cache_handler=MemoryCacheHandler(),
            requests_session=session,
            requests_timeout=self.requests_timeout,
            open_browser=False,
        )

    def _client_credentials(self, session):
        return SpotifyClientCredentials(
            client_id=self.client_id,
            client_secret=self.client_secret,
            cache_handler=MemoryCacheHandler(),
            requests_session=session,
            requests_timeout=self.requests_timeout,
        )

    def _token_request(self, grant, what):
        """Run one grant on a fresh session; returns the token payload."""
        self._ensure_configured()
        try:
            with requests.Session() as session:
                token_info = grant(session)
        except AUTH_ERRORS as e:
            log.error(f'Spotify {what} failed: {e}')
            raise UpstreamAuthError() from e

        if not token_info or not token_info.get('access_token'):
            log.error(f'Spotify {what} response did not contain access_token')
            raise UpstreamAuthError()
        log.info(f'Spotify {what} succeeded, expires in {token_info.get("expires_in")}s')
        return token_info

    def client_credentials_auth(self):
        """Get an app-only token via the client-credentials grant."""
        return self._token_request(
            lambda session: self._client_credentials(session).get_access_token(
                as_dict=True, check_cache=False),
            'client credentials exchange')

    def authorization_code_exchange(self, code, redirect_uri=None):
        """Exchange a one-time authorization code for access/refresh tokens."""
        # spotipy would fall back to an interactive prompt without a code
        if not code:
            raise MissingCodeError()
        return self._token_request(
            lambda session: self._oauth(session, redirect_uri=redirect_uri).get_access_token(
                code, as_dict=True, check_cache=False),
            'code exchange')

    def refresh_access_token(self, refresh_token):
        """Trade a refresh token for a new access token."""
        if not refresh_token:
            raise MissingTokenError('Missing refresh token')
        return self._token_request(
            lambda session: self._oauth(session).refresh_access_token(refresh_token),
            'token refresh')

    def build_login_redirect(self, scopes=None, redirect_uri=None, state=None):
        """Get the Spotify authorization URL for the requested scopes. No I/O."""
        if isinstance(scopes, (list, tuple)):
            scopes = ' '.join(scopes)
        self._ensure_configured()
        with requests.Session() as session:
            oauth = self._oauth(session, redirect_uri=redirect_uri, scope=scopes)
            return oauth.get_authorize_url(state=state)
