import copy

import pytest
from pytest_mock import MockerFixture

from workbench.charts.catalog import ChartKind
from workbench.charts.chart import Chart
from workbench.charts.hypertune import (
    REGENERATION_KEYS,
    ChartTuner,
    apply_cosmetic_overrides,
    options_for,
    requires_regeneration,
    sections_for,
    validate_params,
)
from workbench.errors import ValidationError

PAYLOAD = {
    "data": [{"type": "scatter", "x": [1, 2], "y": [3, 4], "marker": {"size": 4}}],
    "layout": {"title": {"text": "base", "font": {"size": 20}}, "xaxis": {"range": [0, 5]}},
}


def make_chart(kind="scatter", payload=None, params=None) -> Chart:
    return Chart(
        chart_type=kind,
        column_mapping={"x_axis": "age", "y_axis": "income"},
        chart_payload=copy.deepcopy(payload if payload is not None else PAYLOAD),
        project_id="p1",
        hypertune_params=dict(params or {}),
    )


def test_regeneration_keys():
    assert REGENERATION_KEYS == {"color_palette", "nbins", "gridsize"}
    assert requires_regeneration({"nbins": 10}, {"nbins": 20})
    assert not requires_regeneration({"nbins": 10}, {"nbins": 10, "custom_title": "x"})


def test_options_are_closed_per_kind():
    keys = {o.key for o in options_for(ChartKind.HEATMAP)}
    assert keys == {"custom_title"}
    assert "nbins" in {o.key for o in options_for(ChartKind.HISTOGRAM)}
    assert "Axis Scaling (Override Auto)" in sections_for(ChartKind.SCATTER)
    with pytest.raises(ValidationError):
        validate_params(ChartKind.PIE_CHART, {"nbins": 10})
    with pytest.raises(ValidationError):
        validate_params(ChartKind.BAR_CHART, {"barmode": "sideways"})


def test_cosmetic_overrides_do_not_touch_input():
    original = copy.deepcopy(PAYLOAD)
    out = apply_cosmetic_overrides(PAYLOAD, {"custom_title": "Ages", "marker_size": 12}, ChartKind.SCATTER)
    assert PAYLOAD == original
    assert out["layout"]["title"] == {"text": "Ages", "font": {"size": 20}}
    assert out["data"][0]["marker"]["size"] == 12.0


def test_axis_range_needs_both_bounds():
    out = apply_cosmetic_overrides(PAYLOAD, {"x_range_min": "1", "x_range_max": ""}, ChartKind.SCATTER)
    assert "range" not in out["layout"]["xaxis"]
    assert out["layout"]["xaxis"]["autorange"] is True
    out = apply_cosmetic_overrides(PAYLOAD, {"y_range_min": 0, "y_range_max": 10}, ChartKind.SCATTER)
    assert out["layout"]["yaxis"] == {"range": [0.0, 10.0], "autorange": False}
    assert out["layout"]["xaxis"] == {"range": [0, 5]}


def test_unsupported_options_are_ignored_for_kind():
    out = apply_cosmetic_overrides(PAYLOAD, {"line_width": 5}, ChartKind.SCATTER)
    assert "line" not in out["data"][0]


def test_cosmetic_tuning_is_local_and_idempotent(api, mocker: MockerFixture):
    spy = mocker.spy(api, "generate_chart")
    tuner = ChartTuner(api)
    chart = make_chart()
    params = {"custom_title": "T", "opacity": 0.5}

    assert tuner.apply_tuning(chart, params) is False
    first = copy.deepcopy(chart.chart_payload)
    assert tuner.apply_tuning(chart, params) is False

    assert chart.chart_payload == first
    assert chart.base_payload == PAYLOAD
    spy.assert_not_called()


def test_regeneration_then_restyle_round_trip(api):
    tuner = ChartTuner(api)
    chart = make_chart(params={"color_palette": "plotly"})

    assert tuner.apply_tuning(chart, {"color_palette": "viridis"}) is True
    assert api.chart_calls[-1]["hypertune_params"] == {"color_palette": "viridis"}
    regenerated = copy.deepcopy(chart.base_payload)

    assert tuner.apply_tuning(chart, {"color_palette": "viridis", "marker_size": 9}) is False
    assert len(api.chart_calls) == 1
    assert chart.base_payload == regenerated
    assert chart.chart_payload["data"][0]["marker"]["size"] == 9.0
    assert chart.hypertune_params == {"color_palette": "viridis", "marker_size": 9}


def test_image_payload_always_regenerates(api):
    tuner = ChartTuner(api)
    chart = make_chart(kind="hexbin_plot", payload="data:image/png;base64,AAAA")
    assert chart.is_image
    assert tuner.apply_tuning(chart, {"custom_title": "Hex"}) is True
    assert len(api.chart_calls) == 1
