#!/usr/bin/env python3
"""
Thin Spotify Web API client used by both charts.

Covers the three calls the charts need:
  - search for playlists by free-text query
  - list every track of a playlist (follows pagination)
  - fetch audio features for a batch of track ids (max 100 per request)

Authentication is the Client Credentials flow (public playlists only).
Failures are raised as SpotifyAPIError and never retried; the caller decides
what a failed request means for the chart being drawn.
"""

import base64
import logging
import os
import threading
import time
from pathlib import Path

from dotenv import load_dotenv
load_dotenv(Path(__file__).resolve().parent / ".env")

import requests

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

SPOTIFY_CLIENT_ID = os.environ.get("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.environ.get("SPOTIFY_CLIENT_SECRET", "")

SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_API_BASE = "https://api.spotify.com/v1"

REQUEST_TIMEOUT = 30  # seconds

# Audio-features endpoint accepts up to 100 IDs at once
AUDIO_FEATURES_BATCH_SIZE = 100
# Playlist tracks endpoint returns at most 100 per page
PLAYLIST_TRACKS_PAGE_SIZE = 100


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class SpotifyAPIError(Exception):
    """A Spotify request failed (transport error or non-2xx status)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PlaylistNotFoundError(SpotifyAPIError):
    """A playlist search returned no results."""


# ---------------------------------------------------------------------------
# Token management
# ---------------------------------------------------------------------------

class SpotifyAuth:
    """Handles Client Credentials flow with automatic refresh."""

    def __init__(self, client_id: str, client_secret: str,
                 session: requests.Session | None = None):
        self.client_id = client_id
        self.client_secret = client_secret
        self.session = session or requests.Session()
        self.access_token: str | None = None
        self.expires_at: float = 0.0  # epoch seconds
        self._lock = threading.Lock()

    def _request_token(self) -> None:
        """Exchange client credentials for an access token."""
        auth_header = base64.b64encode(
            f"{self.client_id}:{self.client_secret}".encode()
        ).decode()

        try:
            resp = self.session.post(
                SPOTIFY_TOKEN_URL,
                headers={
                    "Authorization": f"Basic {auth_header}",
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                data={"grant_type": "client_credentials"},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise SpotifyAPIError(f"token request failed: {exc}") from exc

        if resp.status_code != 200:
            raise SpotifyAPIError(
                f"token request failed with HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        body = resp.json()
        self.access_token = body["access_token"]
        # Refresh 60 s before actual expiry
        self.expires_at = time.time() + body["expires_in"] - 60
        logger.debug("Obtained Spotify access token (expires in %ss)", body["expires_in"])

    def _expired(self) -> bool:
        return self.access_token is None or time.time() >= self.expires_at

    def get_token(self) -> str:
        """Return a valid access token, refreshing if needed."""
        if self._expired():
            # Worker threads share one auth; only the first one refreshes
            with self._lock:
                if self._expired():
                    self._request_token()
        return self.access_token  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

class SpotifyClient:
    """
    Wraps requests.Session with token injection and error mapping.

    Shared by the worker threads of one render pass; token refresh is
    serialized inside SpotifyAuth.
    """

    def __init__(self, auth: SpotifyAuth, session: requests.Session | None = None):
        self.auth = auth
        self.session = session or requests.Session()

    def get(self, url: str, params: dict | None = None) -> dict:
        """GET a Spotify API endpoint and return the parsed JSON body."""
        headers = {"Authorization": f"Bearer {self.auth.get_token()}"}
        try:
            resp = self.session.get(
                url, headers=headers, params=params, timeout=REQUEST_TIMEOUT
            )
        except requests.RequestException as exc:
            raise SpotifyAPIError(f"GET {url} failed: {exc}") from exc

        if resp.status_code != 200:
            raise SpotifyAPIError(
                f"GET {url} returned HTTP {resp.status_code}: {resp.text[:300]}",
                status_code=resp.status_code,
            )
        return resp.json()

    # -- endpoints ----------------------------------------------------------

    def search(self, query: str, types: list[str], limit: int = 1) -> dict:
        """Search the catalogue; `types` filters result kinds (e.g. ["playlist"])."""
        return self.get(
            f"{SPOTIFY_API_BASE}/search",
            params={"q": query, "type": ",".join(types), "limit": limit},
        )

    def get_playlist_tracks(self, playlist_id: str) -> list[dict]:
        """
        Fetch all playlist items, handling pagination.
        Returns the raw item objects ({"track": {...}, ...}).
        """
        items: list[dict] = []
        url = f"{SPOTIFY_API_BASE}/playlists/{playlist_id}/tracks"
        params: dict | None = {
            "fields": "items(track(id,name,artists(name))),next,total",
            "limit": PLAYLIST_TRACKS_PAGE_SIZE,
            "offset": 0,
        }

        while url:
            data = self.get(url, params=params)
            items.extend(data.get("items", []))
            # Spotify returns a full next URL
            url = data.get("next")
            params = None  # next URL already contains query params

        return items

    def get_audio_features_for_tracks(self, track_ids: list[str]) -> list[dict]:
        """
        Fetch audio features for any number of track IDs, 100 per request.
        Spotify returns null entries for unavailable tracks; those are dropped.
        """
        features: list[dict] = []
        for i in range(0, len(track_ids), AUDIO_FEATURES_BATCH_SIZE):
            batch = track_ids[i : i + AUDIO_FEATURES_BATCH_SIZE]
            data = self.get(
                f"{SPOTIFY_API_BASE}/audio-features",
                params={"ids": ",".join(batch)},
            )
            features.extend(f for f in data.get("audio_features", []) if f)
        return features


def create_client(client_id: str = SPOTIFY_CLIENT_ID,
                  client_secret: str = SPOTIFY_CLIENT_SECRET) -> SpotifyClient:
    """Build a client from credentials (defaults come from the environment)."""
    return SpotifyClient(SpotifyAuth(client_id, client_secret))


def playlist_track_ids(items: list[dict]) -> list[str]:
    """Track ids of a playlist listing, skipping local files and removed tracks."""
    ids = []
    for item in items:
        track = item.get("track")
        if track and track.get("id"):
            ids.append(track["id"])
    return ids
