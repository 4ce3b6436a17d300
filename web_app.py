#!/usr/bin/env python3
"""
Top Charts Explorer — Web Application

Serves the country boxplot (one audio feature across Top 50 playlists) and
the two-playlist radar chart.
"""

import logging
from pathlib import Path

from dotenv import load_dotenv
load_dotenv(Path(__file__).resolve().parent / ".env")

from flask import Flask, Response, render_template, request

from boxplot_render import figure_html
from boxplot_view import BoxplotView, ChartState, RenderPass
from chart_config import AUDIO_FEATURES
from log_setup import setup_logging
from radar_chart import RadarChartView, search_playlists
from spotify_api import SpotifyAPIError, SpotifyClient, create_client

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = Flask(__name__, template_folder="templates")


def get_client() -> SpotifyClient:
    """Shared API client, created on first use."""
    client = app.config.get("SPOTIFY_CLIENT")
    if client is None:
        client = app.config["SPOTIFY_CLIENT"] = create_client()
    return client


def get_boxplot_view() -> BoxplotView:
    """The one boxplot (and its drawing surface) served by this app."""
    view = app.extensions.get("boxplot_view")
    if view is None:
        view = app.extensions["boxplot_view"] = BoxplotView(get_client())
    return view


def _render_boxplot(feature: str) -> RenderPass:
    view = get_boxplot_view()
    if view.state is ChartState.IDLE and feature == view.config.feature:
        return view.mount()
    return view.select_feature(feature)


def _boxplot_error(result: RenderPass) -> tuple[str, int] | None:
    """(message, status) for a pass that did not draw, else None."""
    if result.stale:
        return "Superseded by a newer request", 409
    if result.error is not None:
        return f"Could not load chart data: {result.error}", 502
    return None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.route("/")
def index():
    """Landing page."""
    return render_template("index.html")


# --------------- Boxplot ---------------

@app.route("/boxplot")
def boxplot_page():
    """Boxplot page with the feature dropdown."""
    view = get_boxplot_view()
    feature = request.args.get("feature", view.config.feature)
    if feature not in AUDIO_FEATURES:
        return render_template("boxplot.html", features=AUDIO_FEATURES, selected=None,
                               chart=None, error=f"Unknown feature: {feature}"), 400

    result = _render_boxplot(feature)
    problem = _boxplot_error(result)
    if problem:
        message, status = problem
        return render_template("boxplot.html", features=AUDIO_FEATURES, selected=feature,
                               chart=None, error=message), status

    return render_template("boxplot.html", features=AUDIO_FEATURES, selected=feature,
                           chart=figure_html(result.figure, view.surface.chart_id), error=None)


@app.route("/boxplot.json")
def boxplot_json():
    """Plotly figure JSON of the boxplot for `feature`."""
    view = get_boxplot_view()
    feature = request.args.get("feature", view.config.feature)
    if feature not in AUDIO_FEATURES:
        return {"error": f"Unknown feature: {feature}"}, 400

    result = _render_boxplot(feature)
    problem = _boxplot_error(result)
    if problem:
        message, status = problem
        return {"error": message}, status
    return Response(result.figure.to_json(), mimetype="application/json")


# --------------- Radar ---------------

@app.route("/radar")
def radar_page():
    """Radar chart of the playlists chosen in the two search boxes."""
    view = RadarChartView(get_client())
    try:
        for slot in RadarChartView.SLOTS:
            view.select(slot, request.args.get(f"playlist{slot}", "").strip())
    except SpotifyAPIError as exc:
        logger.error("Radar chart data failed: %s", exc)
        return render_template("radar.html", chart=None, args=request.args,
                               error=f"Could not load playlist: {exc}"), 502

    return render_template("radar.html", chart=view.render(), args=request.args, error=None)


@app.route("/api/playlists/search")
def playlist_search():
    """Playlists matching ?q= as JSON."""
    query = request.args.get("q", "").strip()
    if not query:
        return {"error": "Missing query"}, 400
    try:
        return {"playlists": search_playlists(get_client(), query)}
    except SpotifyAPIError as exc:
        logger.error("Playlist search %r failed: %s", query, exc)
        return {"error": str(exc)}, 502


# ---------------------------------------------------------------------------
if __name__ == "__main__":
    setup_logging()
    app.run(host="127.0.0.1", port=8000, debug=True)
