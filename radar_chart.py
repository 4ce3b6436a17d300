"""
Radar chart comparing the average audio features of two playlists.

radar_chart(mount_id, data, options) is the polar renderer: one closed
polygon per series of floats, drawn with plotly and returned as an HTML
fragment whose root div carries `mount_id`. RadarChartView keeps the two
playlist selections and rebuilds the chart whenever either changes.
"""

import logging
from dataclasses import dataclass, field

import plotly.graph_objects as go

from chart_config import AUDIO_FEATURES, Margin
from feature_extract import feature_value
from spotify_api import SpotifyClient, playlist_track_ids

logger = logging.getLogger(__name__)

RADAR_MOUNT_ID = "radarChart"
SERIES_COLORS = ("#EDC951", "#CC333F", "#00A0B0")
PLAYLIST_SEARCH_LIMIT = 10


@dataclass(frozen=True)
class RadarOptions:
    width: float = 500
    height: float = 500
    margin: Margin = field(default_factory=lambda: Margin(100, 100, 100, 100))
    max_value: float = 1.0
    levels: int = 10
    axes: tuple[str, ...] = AUDIO_FEATURES


def radar_chart(mount_id: str, data: list[list[float]], options: RadarOptions) -> str:
    """Render `data` (one float list per series) as an HTML fragment."""
    axes = list(options.axes)
    fig = go.Figure()

    for i, series in enumerate(data):
        if not series:
            continue
        if len(series) != len(axes):
            raise ValueError(f"series {i} has {len(series)} values for {len(axes)} axes")
        color = SERIES_COLORS[i % len(SERIES_COLORS)]
        fig.add_trace(go.Scatterpolar(
            r=list(series) + [series[0]],
            theta=axes + [axes[0]],
            fill="toself",
            name=f"Playlist {i + 1}",
            line=dict(color=color, width=2),
            opacity=0.7,
        ))

    step = options.max_value / options.levels
    fig.update_layout(
        width=options.width + options.margin.left + options.margin.right,
        height=options.height + options.margin.top + options.margin.bottom,
        margin=dict(t=options.margin.top, r=options.margin.right,
                    b=options.margin.bottom, l=options.margin.left),
        polar=dict(
            radialaxis=dict(
                range=[0, options.max_value],
                tickvals=[round(step * k, 10) for k in range(1, options.levels + 1)],
                showline=False,
            ),
            angularaxis=dict(categoryarray=axes, categoryorder="array"),
        ),
        showlegend=True,
    )
    return fig.to_html(full_html=False, include_plotlyjs="cdn", div_id=mount_id.lstrip("#"))


# ---------------------------------------------------------------------------
# Playlist data
# ---------------------------------------------------------------------------

def search_playlists(client: SpotifyClient, query: str,
                     limit: int = PLAYLIST_SEARCH_LIMIT) -> list[dict]:
    """Playlists matching `query` as [{id, name, owner}, ...]."""
    results = client.search(query, ["playlist"], limit=limit)
    playlists = []
    for p in results.get("playlists", {}).get("items", []):
        if not p or not p.get("id"):
            continue
        playlists.append({
            "id": p["id"],
            "name": p.get("name", ""),
            "owner": (p.get("owner") or {}).get("display_name", ""),
        })
    return playlists


def playlist_feature_profile(client: SpotifyClient, playlist_id: str,
                             features: tuple[str, ...] = AUDIO_FEATURES) -> list[float]:
    """Mean of each feature over the playlist's tracks (missing values skipped, 0.0 if none)."""
    items = client.get_playlist_tracks(playlist_id)
    records = client.get_audio_features_for_tracks(playlist_track_ids(items))

    profile = []
    for key in features:
        vals = [v for v in (feature_value(r, key) for r in records) if v is not None]
        profile.append(round(sum(vals) / len(vals), 4) if vals else 0.0)
    return profile


@dataclass
class PlaylistSelection:
    playlist_id: str
    profile: list[float]


class RadarChartView:
    """Two playlist slots; the chart always reflects both current selections."""

    SLOTS = (1, 2)

    def __init__(self, client: SpotifyClient, options: RadarOptions | None = None,
                 mount_id: str = RADAR_MOUNT_ID):
        self.client = client
        self.options = options or RadarOptions()
        self.mount_id = mount_id
        self.selections: dict[int, PlaylistSelection | None] = {s: None for s in self.SLOTS}

    def select(self, slot: int, playlist_id: str | None) -> None:
        if slot not in self.SLOTS:
            raise ValueError(f"slot must be one of {self.SLOTS}, got {slot}")
        if not playlist_id:
            self.selections[slot] = None
            return
        current = self.selections[slot]
        if current is not None and current.playlist_id == playlist_id:
            return
        profile = playlist_feature_profile(self.client, playlist_id, self.options.axes)
        self.selections[slot] = PlaylistSelection(playlist_id, profile)
        logger.info("Radar slot %d -> playlist %s", slot, playlist_id)

    def series(self) -> list[list[float]]:
        data = [sel.profile for sel in self.selections.values() if sel is not None]
        # Empty chart still draws the grid
        return data or [[]]

    def render(self) -> str:
        return radar_chart(self.mount_id, self.series(), self.options)
