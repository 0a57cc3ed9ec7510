from unittest.mock import MagicMock

import pytest
import requests
from spotipy.exceptions import SpotifyException

from playlist_relay.errors import MissingTokenError, UpstreamFetchError
from playlist_relay.models import Playlist, Track
from playlist_relay.spotify_client import SpotifyClient, parse_bearer
from tests.support.stubs import fake_spotify, spotify_track


@pytest.mark.unit
@pytest.mark.parametrize('header, expected', [
    ('Bearer abc', 'abc'),
    ('bearer  abc ', 'abc'),
    ('abc', 'abc'),
    ('', None),
    (None, None),
    ('Bearer ', None),
])
def test_parse_bearer(header, expected):
    assert parse_bearer(header) == expected


@pytest.mark.unit
def test_missing_token_fails_before_any_call():
    sp = fake_spotify()
    with pytest.raises(MissingTokenError) as exc:
        SpotifyClient(None, sp=sp)
    assert exc.value.status_code == 401
    assert sp.method_calls == []


@pytest.mark.unit
def test_client_closes_the_session_it_was_given():
    session = MagicMock(spec=requests.Session)
    with SpotifyClient('tok', session=session) as client:
        assert client.session is session
    session.close.assert_called_once_with()
    assert client.session is None


@pytest.mark.unit
def test_injected_api_has_no_session_to_close():
    with SpotifyClient('tok', sp=fake_spotify()) as client:
        assert client.session is None
    client.close()


@pytest.mark.unit
def test_fetch_liked_tracks_projects_items_in_order():
    sp = fake_spotify(saved=[
        {'track': spotify_track('First', 'Artist A', 'id1')},
        {'track': None},
        {'track': spotify_track('Second', 'Artist B', 'id2')},
    ])

    tracks = SpotifyClient('tok', sp=sp).fetch_liked_tracks()

    assert [t.to_dict() for t in tracks] == [
        {'name': 'First', 'artist': 'Artist A', 'id': 'id1', 'uri': 'spotify:track:id1'},
        {'name': 'Second', 'artist': 'Artist B', 'id': 'id2', 'uri': 'spotify:track:id2'},
    ]
    sp.current_user_saved_tracks.assert_called_once_with(limit=50)


@pytest.mark.unit
def test_fetch_liked_tracks_small_limit_passes_through():
    sp = fake_spotify()
    SpotifyClient('tok', sp=sp).fetch_liked_tracks(limit=10)
    sp.current_user_saved_tracks.assert_called_once_with(limit=10)


@pytest.mark.unit
def test_non_2xx_is_an_upstream_fetch_error():
    sp = fake_spotify()
    sp.current_user.side_effect = SpotifyException(401, -1, 'The access token expired')
    with pytest.raises(UpstreamFetchError) as exc:
        SpotifyClient('expired', sp=sp).fetch_current_user()
    assert exc.value.status_code == 500


@pytest.mark.unit
def test_transport_error_is_an_upstream_fetch_error():
    sp = fake_spotify()
    sp.current_user.side_effect = requests.Timeout('slow')
    with pytest.raises(UpstreamFetchError):
        SpotifyClient('tok', sp=sp).fetch_current_user()


@pytest.mark.unit
def test_search_takes_first_result():
    sp = fake_spotify()
    sp.search.side_effect = None
    sp.search.return_value = {'tracks': {'items': [
        spotify_track('Song', 'Artist', 'hit1'),
        spotify_track('Song (Live)', 'Artist', 'hit2'),
    ]}}

    hit = SpotifyClient('tok', sp=sp).search_track(Track('Song', 'Artist'))

    assert hit.uri == 'spotify:track:hit1'
    sp.search.assert_called_once_with(q='Song Artist', limit=1, type='track')


@pytest.mark.unit
def test_search_without_artist_queries_name_only():
    sp = fake_spotify()
    hit = SpotifyClient('tok', sp=sp).search_track(Track('Lonely Title'))
    assert hit is None
    assert sp.search.call_args.kwargs['q'] == 'Lonely Title'


@pytest.mark.unit
def test_create_playlist():
    sp = fake_spotify()

    playlist = SpotifyClient('tok', sp=sp).create_playlist('user-1')

    assert playlist == Playlist(id='pl1', url='https://open.spotify.com/playlist/pl1')
    args, kwargs = sp.user_playlist_create.call_args
    assert args == ('user-1', 'AI Generated Playlist')
    assert kwargs['public'] is True


@pytest.mark.unit
@pytest.mark.parametrize('payload', [{}, {'external_urls': {}}, None])
def test_create_playlist_without_id_is_an_upstream_fetch_error(payload):
    sp = fake_spotify(playlist=payload)
    with pytest.raises(UpstreamFetchError):
        SpotifyClient('tok', sp=sp).create_playlist('user-1')


@pytest.mark.unit
def test_add_tracks_batches_by_100():
    sp = fake_spotify()
    uris = [f'spotify:track:{i}' for i in range(150)] + ['']

    SpotifyClient('tok', sp=sp).add_tracks('pl1', uris)

    batches = [c.args for c in sp.playlist_add_items.call_args_list]
    assert [(pid, len(chunk)) for pid, chunk in batches] == [('pl1', 100), ('pl1', 50)]


@pytest.mark.unit
def test_add_no_tracks_skips_the_request():
    sp = fake_spotify()
    SpotifyClient('tok', sp=sp).add_tracks('pl1', [])
    sp.playlist_add_items.assert_not_called()
