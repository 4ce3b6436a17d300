"""Tests for render passes, the feature state machine and stale-pass handling."""

import random

import pytest

from boxplot_view import BoxplotView, ChartState, compute_boxplot
from chart_config import BoxplotConfig, Margin
from conftest import FakeSpotifyClient, records
from top_charts import fetch_all_countries

COUNTRIES = ("France", "Japan", "Mexico")


def make_view(client, **config):
    cfg = BoxplotConfig(feature="energy", countries=COUNTRIES, **config)
    return BoxplotView(client, cfg, rng=random.Random(0))


def y_label(view):
    return next(e.text for e in view.surface.elements if e.role == "y-label")


class TestRenderPass:

    def test_mount_moves_idle_to_rendered(self, fake_client):
        view = make_view(fake_client)
        assert view.state is ChartState.IDLE
        result = view.mount()
        assert result.drawn
        assert view.state is ChartState.RENDERED
        assert [s.group_key for s in result.summaries] == list(COUNTRIES)
        assert len(result.observations) == 8

    def test_feature_change_redraws_everything(self):
        data = {c: records("energy", [0.2, 0.4]) + records("valence", [0.9]) for c in COUNTRIES}
        view = make_view(FakeSpotifyClient(data))
        view.mount()
        first = len(view.surface.elements)
        result = view.select_feature("valence")
        assert result.drawn
        assert y_label(view) == "valence"
        # one valence value per country instead of two energy values
        assert len(view.surface.elements) == first - len(COUNTRIES)
        assert view.config.feature == "valence"

    def test_repeat_render_is_idempotent(self, fake_client):
        view = make_view(fake_client)
        view.mount()
        count = len(view.surface.elements)
        view.render()
        assert len(view.surface.elements) == count

    def test_layout_change_triggers_full_pass(self, fake_client):
        view = make_view(fake_client)
        view.mount()
        result = view.update(margin=Margin(20, 20, 20, 20))
        assert result.drawn
        assert result.generation == 2
        assert view.surface.offset == (20, 20)

    def test_unknown_feature_rejected(self, fake_client):
        view = make_view(fake_client)
        with pytest.raises(ValueError):
            view.select_feature("loudness-ish")

    def test_country_without_tracks_is_omitted(self, chart_data):
        chart_data["Mexico"] = []
        view = make_view(FakeSpotifyClient(chart_data))
        result = view.mount()
        assert result.drawn
        assert [s.group_key for s in result.summaries] == ["France", "Japan"]


class TestFailures:

    def test_fetch_failure_draws_nothing(self, failing_client, caplog):
        view = make_view(failing_client)
        result = view.mount()
        assert not result.drawn
        assert result.error is not None
        assert view.state is ChartState.IDLE
        assert view.surface.elements == []
        assert "aborted" in caplog.text

    def test_failure_clears_previous_chart(self, fake_client):
        view = make_view(fake_client)
        view.mount()
        fake_client.charts["Japan"] = RuntimeError("down")
        result = view.render()
        assert result.error is not None
        assert view.surface.elements == []

    def test_view_stays_usable_after_failure(self, fake_client, chart_data):
        fake_client.charts["Japan"] = RuntimeError("down")
        view = make_view(fake_client)
        assert not view.mount().drawn
        fake_client.charts["Japan"] = chart_data["Japan"]
        assert view.render().drawn

    def test_fixture_data_is_not_mutated_through_the_client(self, fake_client, chart_data):
        fake_client.charts["Japan"] = RuntimeError("down")
        assert chart_data["Japan"] == records("energy", [0.5])


class TestStalePasses:

    def test_older_pass_finishing_last_is_discarded(self):
        data = {c: records("energy", [0.3]) + records("valence", [0.7]) for c in COUNTRIES}
        client = FakeSpotifyClient(data)
        view = None
        calls = []

        def fetch(countries, c):
            calls.append(len(calls))
            if len(calls) == 1:
                # a newer selection arrives while the first pass is in flight
                newer = view.select_feature("valence")
                assert newer.drawn
            return fetch_all_countries(countries, c)

        view = BoxplotView(client, BoxplotConfig(feature="energy", countries=COUNTRIES),
                           fetch=fetch)
        first = view.mount()
        assert first.stale
        assert not first.drawn
        assert y_label(view) == "valence"
        assert view.generation == 2

    def test_returned_figure_is_not_touched_by_later_passes(self):
        data = {c: records("energy", [0.3]) + records("valence", [0.7]) for c in COUNTRIES}
        view = make_view(FakeSpotifyClient(data))
        energy = view.select_feature("energy")
        view.select_feature("valence")
        labels = [a.text for a in energy.figure.layout.annotations if a.name == "y-label"]
        assert labels == ["energy"]
        assert energy.figure is not view.surface.figure


class TestComputeBoxplot:

    def test_pure_given_seed(self, chart_data):
        cfg = BoxplotConfig(feature="energy", countries=COUNTRIES)
        a = compute_boxplot(chart_data, cfg, random.Random(5))
        b = compute_boxplot(chart_data, cfg, random.Random(5))
        assert a == b
