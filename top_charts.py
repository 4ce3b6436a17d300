#!/usr/bin/env python3
"""
Fetch the audio features of each country's "Top 50" playlist.

One fetch per country runs on a thread pool and the caller waits for all of
them (fan-out / join). The first failure aborts the whole join: no partial
data is ever returned.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed

from spotify_api import (
    PlaylistNotFoundError,
    SpotifyClient,
    playlist_track_ids,
)

logger = logging.getLogger(__name__)

FETCH_WORKERS = int(os.environ.get("FETCH_WORKERS", "5"))


class ChartFetchError(Exception):
    """A per-country fetch failed, so the whole render pass has no data."""

    def __init__(self, country: str, cause: Exception):
        super().__init__(f"fetching top tracks for {country!r} failed: {cause}")
        self.country = country
        self.cause = cause


def top50_query(country: str) -> str:
    return f"{country} Top 50"


def get_top50_tracks(country: str, client: SpotifyClient) -> list[dict]:
    """
    Audio feature records for the tracks of `country`'s Top 50 playlist.

    The best-ranked playlist matching "<country> Top 50" is used. An empty
    search result raises PlaylistNotFoundError.
    """
    results = client.search(top50_query(country), ["playlist"], limit=1)
    playlists = [p for p in results.get("playlists", {}).get("items", []) if p]
    if not playlists:
        raise PlaylistNotFoundError(f"no playlist found for {top50_query(country)!r}")

    items = client.get_playlist_tracks(playlists[0]["id"])
    features = client.get_audio_features_for_tracks(playlist_track_ids(items))
    logger.debug("%s: %d tracks, %d feature records", country, len(items), len(features))
    return features


def fetch_all_countries(
    countries: list[str],
    client: SpotifyClient,
    workers: int = FETCH_WORKERS,
) -> dict[str, list[dict]]:
    """
    Fetch every country's Top 50 features concurrently and join.

    Returns {country: [feature_record, ...]} in `countries` order. Raises
    ChartFetchError on the first failing country; fetches that have not
    started yet are cancelled.
    """
    results: dict[str, list[dict]] = {}
    if not countries:
        return results

    executor = ThreadPoolExecutor(max_workers=max(1, min(workers, len(countries))))
    try:
        futures = {
            executor.submit(get_top50_tracks, country, client): country
            for country in countries
        }
        for future in as_completed(futures):
            country = futures[future]
            try:
                results[country] = future.result()
            except Exception as exc:
                raise ChartFetchError(country, exc) from exc
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    return {country: results[country] for country in countries}
