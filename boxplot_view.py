#!/usr/bin/env python3
"""
Boxplot of one audio feature across countries' Top 50 playlists.

BoxplotView owns the selected feature and the drawing surface. Every change
(feature, countries, margins, size) runs a full render pass:

    fetch all countries (join) -> extract -> summarize -> scale -> draw

Each pass takes a generation number; a pass that finishes after a newer one
has started is discarded instead of drawn.

Usage:
    python3 boxplot_view.py --feature energy --out boxplot.html
    python3 boxplot_view.py --feature valence --countries France Japan
"""

import argparse
import enum
import logging
import random
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import plotly.graph_objects as go

from boxplot_render import Command, DrawingSurface, build_boxplot_commands
from boxplot_stats import GroupSummary, summarize
from chart_config import AUDIO_FEATURES, DEFAULT_COUNTRIES, DEFAULT_FEATURE, BoxplotConfig
from feature_extract import TaggedObservation, extract_feature
from log_setup import setup_logging
from scales import country_scale, value_scale
from spotify_api import SpotifyClient, create_client
from top_charts import ChartFetchError, fetch_all_countries

logger = logging.getLogger(__name__)


class ChartState(enum.Enum):
    IDLE = "idle"
    RENDERED = "rendered"


@dataclass
class RenderPass:
    """Outcome of one render pass."""
    generation: int
    config: BoxplotConfig
    drawn: bool = False
    stale: bool = False
    error: Exception | None = None
    summaries: list[GroupSummary] = field(default_factory=list)
    observations: list[TaggedObservation] = field(default_factory=list)
    commands: list[Command] = field(default_factory=list)
    figure: go.Figure | None = None


def compute_boxplot(
    country_tracks: dict[str, list[dict]],
    config: BoxplotConfig,
    rng: random.Random | None = None,
) -> tuple[list[GroupSummary], list[TaggedObservation], list[Command]]:
    """Pure part of a render pass: raw records + config -> drawing commands."""
    observations = extract_feature(country_tracks, config.feature)
    summaries = summarize(observations)
    x = country_scale(list(config.countries), config.width)
    y = value_scale(config.height)
    commands = build_boxplot_commands(summaries, observations, x, y, config, rng)
    return summaries, observations, commands


class BoxplotView:
    def __init__(
        self,
        client: SpotifyClient,
        config: BoxplotConfig | None = None,
        surface: DrawingSurface | None = None,
        rng: random.Random | None = None,
        fetch: Callable[[list[str], SpotifyClient], dict[str, list[dict]]] = fetch_all_countries,
    ):
        self.client = client
        self.config = config or BoxplotConfig()
        self.surface = surface or DrawingSurface(self.config)
        self.rng = rng or random.Random()
        self.fetch = fetch
        self.state = ChartState.IDLE
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        return self._generation

    def mount(self) -> RenderPass:
        """Initial draw with the current (default) feature."""
        return self.render()

    def select_feature(self, feature: str) -> RenderPass:
        return self.update(feature=feature)

    def update(self, **changes) -> RenderPass:
        """Change feature / countries / margin / width / height and redraw."""
        return self.render(self.config.with_changes(**changes))

    def render(self, config: BoxplotConfig | None = None) -> RenderPass:
        with self._lock:
            if config is not None:
                self.config = config
            self._generation += 1
            current = RenderPass(self._generation, self.config)

        cfg = current.config
        try:
            country_tracks = self.fetch(list(cfg.countries), self.client)
        except ChartFetchError as exc:
            logger.error("Boxplot pass %d (%s) aborted: %s", current.generation, cfg.feature, exc)
            current.error = exc
            with self._lock:
                current.stale = current.generation != self._generation
                if not current.stale:
                    self.surface.clear()
            return current

        current.summaries, current.observations, current.commands = compute_boxplot(
            country_tracks, cfg, self.rng
        )

        with self._lock:
            if current.generation != self._generation:
                logger.info(
                    "Discarding boxplot pass %d (%s); pass %d is newer",
                    current.generation, cfg.feature, self._generation,
                )
                current.stale = True
                return current
            self.surface.resize(cfg)
            self.surface.apply(current.commands)
            self.state = ChartState.RENDERED
            current.figure = self.surface.figure
            current.drawn = True

        logger.info(
            "Drew %s boxplot: %d groups, %d points",
            cfg.feature, len(current.summaries), len(current.observations),
        )
        return current


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(description="Render the country boxplot to an HTML file")
    parser.add_argument("--feature", default=DEFAULT_FEATURE, choices=AUDIO_FEATURES)
    parser.add_argument("--countries", nargs="+", default=list(DEFAULT_COUNTRIES))
    parser.add_argument("--out", type=Path, default=Path("boxplot.html"))
    parser.add_argument("--seed", type=int, default=None, help="Seed for point jitter")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    setup_logging(args.log_level)

    config = BoxplotConfig(feature=args.feature, countries=tuple(args.countries))
    view = BoxplotView(create_client(), config, rng=random.Random(args.seed))

    print(f"Fetching Top 50 playlists for {len(config.countries)} countries...")
    result = view.mount()
    if not result.drawn:
        print(f"ERROR: boxplot not drawn: {result.error}")
        sys.exit(1)

    result.figure.write_html(args.out, include_plotlyjs="cdn")
    print(f"  -> {len(result.summaries)} countries, {len(result.observations)} tracks")
    print(f"  -> wrote {args.out}")


if __name__ == "__main__":
    main()
