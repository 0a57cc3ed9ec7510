"""
Request-scoped data types shared by the Spotify and AI clients.
Nothing here is persisted; every object lives for one HTTP request.
"""

from dataclasses import dataclass, field
from typing import Optional

from .errors import BadRequestError


def _str_or_none(value):
    if isinstance(value, str):
        return value.strip() or None
    return None


def _artist_from_payload(artist):
    """Artist as one string; a list of credited artists is joined."""
    if isinstance(artist, (list, tuple)):
        artist = ', '.join(a.strip() for a in artist if isinstance(a, str) and a.strip())
    return _str_or_none(artist)


@dataclass
class Track:
    name: str
    artist: Optional[str] = None
    id: Optional[str] = None
    uri: Optional[str] = None

    @classmethod
    def from_spotify(cls, t):
        """Project a Spotify track object onto name, first credited artist, id and uri."""
        artists = t.get('artists') or []
        return cls(
            name=t.get('name', 'Unknown'),
            artist=artists[0]['name'] if artists else 'Unknown',
            id=t.get('id'),
            uri=t.get('uri'),
        )

    @classmethod
    def from_payload(cls, obj):
        """Accept a frontend track: a dict, or a "Name by Artist" / "Name - Artist" string."""
        if isinstance(obj, dict):
            name = obj.get('name') or obj.get('title') or ''
            if not isinstance(name, str):
                raise BadRequestError('Track name must be a string')
            return cls(name=name.strip(), artist=_artist_from_payload(obj.get('artist')),
                       id=_str_or_none(obj.get('id')), uri=_str_or_none(obj.get('uri')))
        if not isinstance(obj, str):
            raise BadRequestError('Each track must be an object or a string')
        text = obj.strip()
        for sep in (' by ', ' - '):
            if sep in text:
                name, artist = text.split(sep, 1)
                return cls(name=name.strip(), artist=artist.strip() or None)
        return cls(name=text)

    @property
    def descriptor(self):
        """"Name by Artist", the form used in recommendation prompts."""
        if self.artist:
            return f'{self.name} by {self.artist}'
        return self.name

    @property
    def query(self):
        """Search query for resolving this track in the catalog."""
        return f'{self.name} {self.artist or ""}'.strip()

    def to_dict(self):
        data = {'name': self.name, 'artist': self.artist, 'id': self.id}
        if self.uri:
            data['uri'] = self.uri
        return data


@dataclass
class Playlist:
    id: str
    url: str

    @classmethod
    def from_spotify(cls, p):
        return cls(id=p['id'], url=(p.get('external_urls') or {}).get('spotify', ''))


@dataclass
class PlaylistResult:
    """Outcome of materializing a playlist, including tracks that found no match."""
    playlist: Playlist
    added: list[Track] = field(default_factory=list)
    unresolved: list[Track] = field(default_factory=list)

    @property
    def playlist_url(self):
        return self.playlist.url

    def to_dict(self):
        return {
            'playlistUrl': self.playlist.url,
            'playlistId': self.playlist.id,
            'added': [t.to_dict() for t in self.added],
            'unresolved': [{'name': t.name, 'artist': t.artist} for t in self.unresolved],
        }
