"""
Shared fixtures: a fake Spotify client that serves canned playlists, so no
test touches the network.
"""

import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from spotify_api import SpotifyAPIError  # noqa: E402


class FakeSpotifyClient:
    """
    Stand-in for SpotifyClient.

    `charts` maps a country to its list of audio feature records; a country
    mapped to an Exception raises it; a missing country searches empty.
    """

    def __init__(self, charts: dict | None = None, playlists: dict | None = None):
        self.charts = dict(charts or {})
        self.playlists = dict(playlists or {})
        self.calls: list[tuple] = []

    def search(self, query, types, limit=1):
        self.calls.append(("search", query, tuple(types), limit))
        country = query.removesuffix(" Top 50")
        if country in self.charts:
            if isinstance(self.charts[country], Exception):
                raise self.charts[country]
            return {"playlists": {"items": [{"id": f"pl-{country}", "name": query}]}}
        items = [
            {"id": pid, "name": name, "owner": {"display_name": "someone"}}
            for pid, (name, _) in self.playlists.items()
            if query.lower() in name.lower()
        ]
        return {"playlists": {"items": items[:limit]}}

    def get_playlist_tracks(self, playlist_id):
        self.calls.append(("tracks", playlist_id))
        records = self._records(playlist_id)
        return [{"track": {"id": f"{playlist_id}-{i}"}} for i in range(len(records))]

    def get_audio_features_for_tracks(self, track_ids):
        self.calls.append(("features", tuple(track_ids)))
        if not track_ids:
            return []
        playlist_id = track_ids[0].rsplit("-", 1)[0]
        return list(self._records(playlist_id))

    def _records(self, playlist_id):
        if playlist_id.startswith("pl-"):
            return self.charts[playlist_id[3:]]
        return self.playlists[playlist_id][1]


def records(feature: str, values: list) -> list[dict]:
    return [{"id": f"t{i}", feature: v} for i, v in enumerate(values)]


@pytest.fixture
def chart_data():
    return {
        "France": records("energy", [0.1, 0.2, 0.3, 0.9]),
        "Japan": records("energy", [0.5]),
        "Mexico": records("energy", [0.4, 0.6, 0.8]),
    }


@pytest.fixture
def fake_client(chart_data):
    return FakeSpotifyClient(chart_data)


@pytest.fixture
def failing_client(chart_data):
    charts = dict(chart_data)
    charts["Japan"] = SpotifyAPIError("boom", status_code=500)
    return FakeSpotifyClient(charts)


