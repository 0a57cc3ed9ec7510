"""
Spotify Web API client wrapper.
One instance per request, bound to the caller's bearer token.
Handles the liked-songs read, profile lookup, track search and playlist writes.
"""

import logging

import requests
import spotipy
from spotipy.exceptions import SpotifyException

from .errors import MissingTokenError, UpstreamFetchError
from .models import Playlist, Track

log = logging.getLogger(__name__)

FETCH_ERRORS = (SpotifyException, requests.RequestException)

# Spotify rejects saved-track pages larger than this
SAVED_TRACKS_PAGE_MAX = 50
# Max URIs per "add items to playlist" request
ADD_ITEMS_BATCH = 100

PLAYLIST_NAME = 'AI Generated Playlist'
PLAYLIST_DESCRIPTION = 'Suggested by AI from your liked songs'


def parse_bearer(header):
    """Accept "Bearer <token>" or a raw token; return None when absent."""
    if not header:
        return None
    header = header.strip()
    scheme, _, token = header.partition(' ')
    if scheme.lower() == 'bearer':
        return token.strip() or None
    return header or None


class SpotifyClient:
    """
    Thin wrapper over spotipy.Spotify. Use as a context manager so the
    HTTP session it owns is closed at the end of the request.
    """

    def __init__(self, access_token, requests_timeout=10, sp=None, session=None):
        if not access_token:
            raise MissingTokenError()
        self.access_token = access_token
        self.session = None
        if sp is None:
            # A plain Session skips spotipy's retry adapter: one call, no retries.
            self.session = session or requests.Session()
            sp = spotipy.Spotify(auth=access_token, requests_session=self.session,
                                 requests_timeout=requests_timeout,
                                 retries=0, status_retries=0)
        self.sp = sp

    def close(self):
        if self.session is not None:
            self.session.close()
            self.session = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _call(self, what, fn, *args, **kwargs):
        """Any spotipy or transport error becomes UpstreamFetchError."""
        try:
            return fn(*args, **kwargs)
        except FETCH_ERRORS as e:
            status_code = getattr(e, 'http_status', None) or getattr(
                getattr(e, 'response', None), 'status_code', 'N/A')
            log.error(f'Spotify {what} failed: {e} (Status: {status_code})')
            raise UpstreamFetchError() from e

    def fetch_current_user(self):
        """Get the current user's profile."""
        return self._call('profile lookup', self.sp.current_user)

    def fetch_liked_tracks(self, limit=100):
        """
        Get the first page of the user's saved tracks.
        Only one page is read; longer libraries are truncated.
        """
        limit = max(1, min(int(limit), SAVED_TRACKS_PAGE_MAX))
        results = self._call('saved tracks', self.sp.current_user_saved_tracks, limit=limit)
        tracks = []
        for item in (results or {}).get('items') or []:
            if not item or not item.get('track'):
                continue
            tracks.append(Track.from_spotify(item['track']))
        return tracks

    def search_track(self, track):
        """Return the first catalog match for a track, or None."""
        results = self._call('search', self.sp.search, q=track.query, limit=1, type='track')
        items = ((results or {}).get('tracks') or {}).get('items') or []
        items = [i for i in items if i and i.get('uri')]
        if not items:
            log.debug(f'Spotify search: no match for "{track.query}"')
            return None
        return Track.from_spotify(items[0])

    def create_playlist(self, user_id, name=PLAYLIST_NAME, public=True,
                        description=PLAYLIST_DESCRIPTION):
        """Create a new playlist owned by user_id."""
        # Spotify enforces limits: name ≤ 100 chars, description ≤ 300 chars
        playlist = self._call(
            'playlist create', self.sp.user_playlist_create,
            user_id, name.strip()[:100], public=public,
            description=(description or '').strip()[:300],
        )
        if not isinstance(playlist, dict) or not playlist.get('id'):
            log.error(f'Spotify playlist create for user {user_id} returned no playlist id')
            raise UpstreamFetchError()
        return Playlist.from_spotify(playlist)

    def add_tracks(self, playlist_id, uris):
        """Append tracks to a playlist in batches of 100."""
        valid_uris = [u for u in uris if u]
        if not valid_uris:
            log.info(f'No tracks to add to playlist {playlist_id}')
            return
        for i in range(0, len(valid_uris), ADD_ITEMS_BATCH):
            chunk = valid_uris[i:i + ADD_ITEMS_BATCH]
            self._call('playlist add', self.sp.playlist_add_items, playlist_id, chunk)
