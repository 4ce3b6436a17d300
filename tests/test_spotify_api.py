"""Tests for the Spotify client (HTTP mocked, no network)."""

import threading
import time
from unittest.mock import MagicMock

import pytest
import requests

from spotify_api import (
    AUDIO_FEATURES_BATCH_SIZE,
    SPOTIFY_API_BASE,
    SpotifyAPIError,
    SpotifyAuth,
    SpotifyClient,
    playlist_track_ids,
)


def response(status=200, body=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body or {}
    resp.text = text
    return resp


@pytest.fixture
def auth():
    a = MagicMock(spec=SpotifyAuth)
    a.get_token.return_value = "tok"
    return a


def client_with(auth, *responses):
    session = MagicMock()
    session.get.side_effect = list(responses)
    return SpotifyClient(auth, session=session), session


class TestSpotifyAuth:

    def test_token_cached_until_expiry(self):
        session = MagicMock()
        session.post.return_value = response(body={"access_token": "abc", "expires_in": 3600})
        a = SpotifyAuth("id", "secret", session=session)
        assert a.get_token() == "abc"
        assert a.get_token() == "abc"
        assert session.post.call_count == 1

    def test_expired_token_is_refreshed(self):
        session = MagicMock()
        session.post.side_effect = [
            response(body={"access_token": "old", "expires_in": 3600}),
            response(body={"access_token": "new", "expires_in": 3600}),
        ]
        a = SpotifyAuth("id", "secret", session=session)
        assert a.get_token() == "old"
        a.expires_at = time.time() - 1
        assert a.get_token() == "new"
        assert session.post.call_count == 2

    def test_concurrent_callers_share_one_refresh(self):
        session = MagicMock()

        def slow_post(*args, **kwargs):
            time.sleep(0.05)
            return response(body={"access_token": "abc", "expires_in": 3600})

        session.post.side_effect = slow_post
        a = SpotifyAuth("id", "secret", session=session)
        start = threading.Barrier(5)
        tokens = []

        def worker():
            start.wait()
            tokens.append(a.get_token())

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert tokens == ["abc"] * 5
        assert session.post.call_count == 1

    def test_token_failure(self):
        session = MagicMock()
        session.post.return_value = response(status=401)
        with pytest.raises(SpotifyAPIError) as info:
            SpotifyAuth("id", "bad", session=session).get_token()
        assert info.value.status_code == 401


class TestSpotifyClient:

    def test_get_injects_token(self, auth):
        client, session = client_with(auth, response(body={"ok": True}))
        assert client.get("https://x") == {"ok": True}
        headers = session.get.call_args.kwargs["headers"]
        assert headers == {"Authorization": "Bearer tok"}

    def test_http_error_is_not_retried(self, auth):
        client, session = client_with(auth, response(status=503, text="unavailable"))
        with pytest.raises(SpotifyAPIError) as info:
            client.get("https://x")
        assert info.value.status_code == 503
        assert session.get.call_count == 1

    def test_transport_error(self, auth):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("offline")
        with pytest.raises(SpotifyAPIError):
            SpotifyClient(auth, session=session).get("https://x")

    def test_search_params(self, auth):
        client, session = client_with(auth, response(body={"playlists": {"items": []}}))
        client.search("France Top 50", ["playlist"], limit=1)
        args, kwargs = session.get.call_args
        assert args[0] == f"{SPOTIFY_API_BASE}/search"
        assert kwargs["params"] == {"q": "France Top 50", "type": "playlist", "limit": 1}

    def test_playlist_tracks_follow_pagination(self, auth):
        client, session = client_with(
            auth,
            response(body={"items": [{"track": {"id": "a"}}], "next": "https://next"}),
            response(body={"items": [{"track": {"id": "b"}}], "next": None}),
        )
        items = client.get_playlist_tracks("pl")
        assert playlist_track_ids(items) == ["a", "b"]
        assert session.get.call_args_list[1].args[0] == "https://next"
        assert session.get.call_args_list[1].kwargs["params"] is None

    def test_audio_features_batched_and_nulls_dropped(self, auth):
        ids = [f"t{i}" for i in range(AUDIO_FEATURES_BATCH_SIZE + 1)]
        client, session = client_with(
            auth,
            response(body={"audio_features": [{"id": "t0", "energy": 0.5}, None]}),
            response(body={"audio_features": [{"id": "t100", "energy": 0.1}]}),
        )
        features = client.get_audio_features_for_tracks(ids)
        assert [f["id"] for f in features] == ["t0", "t100"]
        assert session.get.call_count == 2
        second = session.get.call_args_list[1].kwargs["params"]["ids"]
        assert second == "t100"


def test_playlist_track_ids_skips_missing_tracks():
    items = [{"track": {"id": "a"}}, {"track": None}, {"track": {"id": None}}, {}]
    assert playlist_track_ids(items) == ["a"]
