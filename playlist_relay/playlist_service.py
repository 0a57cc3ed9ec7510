"""
Playlist generation pipeline.

resolve user -> create playlist -> resolve tracks -> add tracks

Stages run strictly in order and any upstream error aborts the rest.
Track resolution fans out over a small thread pool but keeps the
recommendation order. Tracks with no search hit are reported back as
unresolved instead of failing the request.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial

from .errors import MissingTokenError, UpstreamFetchError
from .models import PlaylistResult
from .spotify_client import PLAYLIST_NAME, SpotifyClient

log = logging.getLogger(__name__)


class PlaylistService:
    def __init__(self, ai=None, search_concurrency=4, requests_timeout=10,
                 client_factory=None):
        self.ai = ai
        self.search_concurrency = max(1, int(search_concurrency or 1))
        self.client_factory = client_factory or (
            lambda token: SpotifyClient(token, requests_timeout=requests_timeout))

    @classmethod
    def from_settings(cls, settings, ai=None, client_factory=None):
        return cls(
            ai=ai,
            search_concurrency=settings.search_concurrency,
            requests_timeout=settings.requests_timeout,
            client_factory=client_factory,
        )

    def _search_one(self, access_token, track):
        with self.client_factory(access_token) as spotify:
            return spotify.search_track(track)

    def resolve_tracks(self, spotify, tracks, access_token=None):
        """Search the catalog for each track. Returns (matches, unresolved) in input order.

        Concurrent searches each get their own client (and HTTP session);
        the caller's client is only used on the sequential path.
        """
        if self.search_concurrency == 1 or len(tracks) <= 1 or not access_token:
            hits = [spotify.search_track(t) for t in tracks]
        else:
            workers = min(self.search_concurrency, len(tracks))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                hits = list(executor.map(partial(self._search_one, access_token), tracks))

        matches, unresolved = [], []
        for track, hit in zip(tracks, hits):
            if hit and hit.uri:
                matches.append(hit)
            else:
                log.info(f'No catalog match for "{track.query}"')
                unresolved.append(track)
        return matches, unresolved

    def materialize(self, recommendations, access_token, name=PLAYLIST_NAME):
        """Create a public playlist and fill it with the matched recommendations."""
        with self.client_factory(access_token) as spotify:
            user = spotify.fetch_current_user()
            user_id = user.get('id') if isinstance(user, dict) else None
            if not user_id:
                log.error('Spotify profile lookup returned no user id')
                raise UpstreamFetchError()

            playlist = spotify.create_playlist(user_id, name=name, public=True)
            log.info(f'Created playlist {playlist.id} for user {user_id}')

            matches, unresolved = self.resolve_tracks(spotify, recommendations, access_token)

            try:
                spotify.add_tracks(playlist.id, [t.uri for t in matches])
            except UpstreamFetchError:
                # No rollback: the playlist stays on Spotify, empty.
                log.error(f'Populating playlist {playlist.id} failed; it was left empty')
                raise

        log.info(f'Playlist {playlist.id}: {len(matches)} added, '
                 f'{len(unresolved)} unresolved')
        return PlaylistResult(playlist=playlist, added=matches, unresolved=unresolved)

    def generate(self, liked_tracks, access_token):
        """Full chain: AI suggestions from liked tracks, then materialize them."""
        # Checked before the AI call so a 401 costs nothing upstream.
        if not access_token:
            raise MissingTokenError()
        recommendations = self.ai.recommend(liked_tracks)
        return self.materialize(recommendations, access_token)
