import pytest

from workbench.charts.catalog import CATALOG, ChartKind, charts_for, default_title, validate_mapping
from workbench.charts.chart import Chart
from workbench.errors import MappingError


def test_catalog_covers_every_kind():
    assert set(CATALOG) == set(ChartKind)
    assert {s.kind for s in charts_for("multivariate")} == {
        ChartKind.BUBBLE_CHART,
        ChartKind.STACKED_BAR_CHART,
        ChartKind.HEATMAP,
    }


def test_parse():
    assert ChartKind.parse("histogram") is ChartKind.HISTOGRAM
    assert ChartKind.parse(ChartKind.HEATMAP) is ChartKind.HEATMAP
    with pytest.raises(MappingError):
        ChartKind.parse("radar")


def test_histogram_requires_numerical(metadata):
    assert validate_mapping("histogram", {"x_axis": "age"}, metadata) == {"x_axis": "age"}
    with pytest.raises(MappingError):
        validate_mapping("histogram", {"x_axis": "city"}, metadata)
    with pytest.raises(MappingError):
        validate_mapping("histogram", {}, metadata)
    with pytest.raises(MappingError):
        validate_mapping("histogram", {"x_axis": "age", "color": "city"}, metadata)


@pytest.mark.parametrize(
    "mapping, ok",
    [
        ({"x_axis": "age", "y_axis": "income"}, True),
        ({"time_axis": "joined", "y_axis": "income"}, True),
        ({"time_axis": "joined", "x_axis": "age", "y_axis": "income"}, False),
        ({"time_axis": "joined"}, False),
        ({"x_axis": "age"}, False),
    ],
)
def test_line_chart_axes(metadata, mapping, ok):
    if ok:
        assert validate_mapping("line_chart", mapping, metadata)
    else:
        with pytest.raises(MappingError):
            validate_mapping("line_chart", mapping, metadata)


def test_bar_chart_needs_one_numeric_and_one_group(metadata):
    assert validate_mapping("bar_chart", {"x_axis": "city", "y_axis": "income"}, metadata)
    with pytest.raises(MappingError, match="two Numerical"):
        validate_mapping("bar_chart", {"x_axis": "age", "y_axis": "income"}, metadata)
    with pytest.raises(MappingError, match="two Categorical"):
        validate_mapping("violin_plot", {"x_axis": "city", "y_axis": "joined"}, metadata)


def test_stacked_bar_color_must_be_categorical(metadata):
    ok = {"x_axis": "city", "y_axis": "income", "color": "segment"}
    assert validate_mapping("stacked_bar_chart", ok, metadata) == ok
    with pytest.raises(MappingError):
        validate_mapping("stacked_bar_chart", dict(ok, color="joined"), metadata)


def test_heatmap_needs_two_numerical_columns(metadata):
    assert validate_mapping("heatmap", {"columns": ["age", "income"]}, metadata) == {"columns": ["age", "income"]}
    with pytest.raises(MappingError):
        validate_mapping("heatmap", {"columns": ["age"]}, metadata)


def test_titles():
    assert default_title("histogram", {"x_axis": "age"}) == "histogram of age"
    assert default_title(ChartKind.HEATMAP, {"columns": ["a", "b"]}) == "heatmap of Data"
    chart = Chart("pie_chart", {"names": "city"}, {"data": [], "layout": {}})
    assert chart.display_title() == "pie_chart of city"
    chart.count = 42
    assert chart.display_title() == "pie_chart of city (n=42)"
    chart.hypertune_params["custom_title"] = "Cities"
    rendered = chart.render()
    assert rendered["title"] == "Cities (n=42)"
    assert rendered["chart_data"]["layout"]["title"] == {"text": "Cities (n=42)", "font": {"size": 14}}
    assert chart.chart_payload == {"data": [], "layout": {}}


def test_from_export_accepts_camel_case():
    chart = Chart.from_export(
        {
            "id": "abc",
            "chartType": "histogram",
            "columnMapping": {"x_axis": "age"},
            "chartData": {"data": [], "layout": {}},
            "hypertuneParams": {"nbins": 10},
        },
        "p1",
    )
    assert chart.id == "abc"
    assert chart.project_id == "p1"
    assert chart.hypertune_params == {"nbins": 10}
    assert chart.base_payload == chart.chart_payload
