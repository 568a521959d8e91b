import pytest
from flask.testing import FlaskClient
from pytest_mock import MockerFixture

from workbench.errors import RequestError


@pytest.fixture
def dashboard(client: FlaskClient) -> str:
    resp = client.post("/dashboards", json={"project_id": "p1"}, headers={"Authorization": "Bearer t"})
    assert resp.status_code == 201
    return resp.get_json()["id"]


def add_histogram(client, dashboard):
    resp = client.post(f"/dashboards/{dashboard}/charts", json={"chart_type": "histogram", "columns": {"x_axis": "age"}})
    assert resp.status_code == 201
    return resp.get_json()


def add_city_slicer(client, dashboard, chart_ids):
    sid = client.post(f"/dashboards/{dashboard}/slicers", json={"kind": "slicer_list"}).get_json()["id"]
    resp = client.put(f"/dashboards/{dashboard}/slicers/{sid}/column", json={"column": "city", "data_type": "categorical"})
    assert resp.status_code == 200
    client.put(f"/dashboards/{dashboard}/slicers/{sid}/links", json={"chart_ids": chart_ids})
    return sid


def test_health(client: FlaskClient, dashboard):
    body = client.get("/health").get_json()
    assert body["ok"] is True
    assert body["dashboards"] == 1
    assert body["count_backend"] == "remote"


def test_mount_requires_project(client: FlaskClient):
    resp = client.post("/dashboards", json={})
    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "validation"


def test_chart_title_carries_count(client: FlaskClient, dashboard):
    chart = add_histogram(client, dashboard)
    assert chart["title"] == "histogram of age (n=6)"
    assert chart["chart_data"]["layout"]["title"]["text"] == "histogram of age (n=6)"


def test_slicer_flow_updates_titles(client: FlaskClient, dashboard):
    chart = add_histogram(client, dashboard)
    cid = chart["id"]
    sid = add_city_slicer(client, dashboard, [cid])

    body = client.post(f"/dashboards/{dashboard}/slicers/{sid}/input", json={"input": "Accra"}).get_json()
    assert body["accepted"] is True
    assert body["titles"][cid] == "histogram of age (n=3)"
    assert body["widget"]["selected"] == ["Accra"]

    filters = client.get(f"/dashboards/{dashboard}/filters").get_json()
    assert filters["selections"] == {"city": ["Accra"]}

    body = client.put(f"/dashboards/{dashboard}/slicers/{sid}/value", json={"value": ["Kumasi"]}).get_json()
    assert body["titles"][cid] == "histogram of age (n=2)"

    body = client.post(f"/dashboards/{dashboard}/slicers/{sid}/clear").get_json()
    assert body["titles"][cid] == "histogram of age (n=6)"
    assert body["widget"]["state"] == "configured_empty"


def test_range_slicer_rejects_text(client: FlaskClient, dashboard):
    cid = add_histogram(client, dashboard)["id"]
    sid = client.post(f"/dashboards/{dashboard}/slicers", json={"kind": "slicer_range"}).get_json()["id"]
    client.put(f"/dashboards/{dashboard}/slicers/{sid}/column", json={"column": "age", "data_type": "numerical"})
    client.put(f"/dashboards/{dashboard}/slicers/{sid}/links", json={"chart_ids": [cid]})

    body = client.post(
        f"/dashboards/{dashboard}/slicers/{sid}/input", json={"input": {"field": "min", "text": "forty"}}
    ).get_json()
    assert body["accepted"] is False
    assert body["widget"]["inputs"]["min"] == "forty"
    assert body["titles"][cid] == "histogram of age (n=6)"


def test_slicer_errors(client: FlaskClient, dashboard):
    resp = client.post(f"/dashboards/{dashboard}/slicers", json={"kind": "sidebar"})
    assert resp.status_code == 400

    sid = client.post(f"/dashboards/{dashboard}/slicers", json={"kind": "slicer_list"}).get_json()["id"]
    resp = client.put(f"/dashboards/{dashboard}/slicers/{sid}/column", json={"column": "age", "data_type": "categorical"})
    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "invalid_column_type"

    resp = client.post(f"/dashboards/{dashboard}/slicers/{sid}/input", json={"input": "Accra"})
    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "slicer_not_configured"

    resp = client.put(f"/dashboards/{dashboard}/slicers/{sid}/links", json={"chart_ids": ["ghost"]})
    assert resp.status_code == 404

    assert client.get(f"/dashboards/{dashboard}/slicers/nope").status_code == 404


def test_column_selector_widget(client: FlaskClient, dashboard):
    cid = add_histogram(client, dashboard)["id"]
    sid = client.post(
        f"/dashboards/{dashboard}/slicers", json={"kind": "column_selector", "data_type": "numerical"}
    ).get_json()["id"]
    resp = client.put(
        f"/dashboards/{dashboard}/slicers/{sid}/column",
        json={"data_type": "numerical", "columns": ["age", "income"], "linked_chart_ids": [cid]},
    )
    assert resp.get_json()["widget"]["linked_charts"] == 1
    body = client.post(f"/dashboards/{dashboard}/slicers/{sid}/input", json={"input": "income"}).get_json()
    assert body["widget"]["columns"][1] == {"name": "income", "checked": True}
    assert body["titles"][cid] == "histogram of age (n=6)"


def test_chart_mapping_error(client: FlaskClient, dashboard):
    resp = client.post(
        f"/dashboards/{dashboard}/charts", json={"chart_type": "bar_chart", "columns": {"x_axis": "age", "y_axis": "income"}}
    )
    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "mapping"


def test_chart_service_failure(client: FlaskClient, dashboard, api, mocker: MockerFixture):
    mocker.patch.object(api, "generate_chart", side_effect=RequestError("down", status=503, detail="maintenance"))
    resp = client.post(f"/dashboards/{dashboard}/charts", json={"chart_type": "histogram", "columns": {"x_axis": "age"}})
    assert resp.status_code == 502
    assert resp.get_json() == {"error": "down", "kind": "request", "status": 503, "detail": "maintenance"}


def test_import_exported_chart(client: FlaskClient, dashboard):
    export = {
        "chartType": "pie_chart",
        "columnMapping": {"names": "city"},
        "chartData": {"data": [{"type": "pie"}], "layout": {}},
    }
    resp = client.post(f"/dashboards/{dashboard}/charts", json={"export": export})
    assert resp.status_code == 201
    assert resp.get_json()["title"] == "pie_chart of city (n=6)"

    resp = client.post(f"/dashboards/{dashboard}/charts", json={"export": dict(export, chartType="radar")})
    assert resp.status_code == 400


def test_tuning(client: FlaskClient, dashboard, api):
    cid = add_histogram(client, dashboard)["id"]
    calls = len(api.chart_calls)
    body = client.post(f"/dashboards/{dashboard}/charts/{cid}/tuning", json={"params": {"custom_title": "Ages"}}).get_json()
    assert body["regenerated"] is False
    assert body["chart"]["title"] == "Ages (n=6)"
    assert len(api.chart_calls) == calls

    body = client.post(f"/dashboards/{dashboard}/charts/{cid}/tuning", json={"params": {"nbins": 8}}).get_json()
    assert body["regenerated"] is True

    resp = client.post(f"/dashboards/{dashboard}/charts/{cid}/tuning", json={"params": {"gridsize": 8}})
    assert resp.status_code == 400


def test_catalog(client: FlaskClient):
    charts = client.get("/catalog/charts").get_json()["charts"]
    assert len(charts) == 13
    hist = next(c for c in charts if c["key"] == "histogram")
    assert hist["requires"][0]["role"] == "x_axis"
    assert hist["tuning"]["Data / Layout Options"][0]["key"] == "nbins"
    assert hist["tuning"]["Data / Layout Options"][0]["regenerates"] is True


def test_layout_and_removal(client: FlaskClient, dashboard):
    cid = add_histogram(client, dashboard)["id"]
    sid = add_city_slicer(client, dashboard, [cid])
    body = client.put(
        f"/dashboards/{dashboard}/layout", json={"layout": [{"i": cid, "x": 6, "y": 0, "w": 6, "h": 4}]}
    ).get_json()
    assert body["layout"][0] == {"i": cid, "kind": "chart", "x": 6, "y": 0, "w": 6, "h": 4}
    assert client.put(f"/dashboards/{dashboard}/layout", json={"layout": "nope"}).status_code == 400

    assert client.delete(f"/dashboards/{dashboard}/items/{cid}").status_code == 200
    widget = client.get(f"/dashboards/{dashboard}/slicers/{sid}").get_json()
    assert widget["linked_chart_ids"] == []


def test_patch_item_moves_and_resizes(client: FlaskClient, dashboard):
    cid = add_histogram(client, dashboard)["id"]
    resp = client.patch(f"/dashboards/{dashboard}/items/{cid}", json={"x": 10})
    assert resp.status_code == 200
    assert resp.get_json() == {"i": cid, "kind": "chart", "x": 6, "y": 0, "w": 6, "h": 4}

    body = client.patch(f"/dashboards/{dashboard}/items/{cid}", json={"w": 12, "h": 5}).get_json()
    assert (body["x"], body["w"], body["h"]) == (0, 12, 5)
    layout = client.get(f"/dashboards/{dashboard}").get_json()["layout"]
    assert layout[0] == body

    assert client.patch(f"/dashboards/{dashboard}/items/{cid}", json={"x": "left"}).status_code == 400
    assert client.patch(f"/dashboards/{dashboard}/items/nope", json={"x": 1}).status_code == 404


def test_count_failure_reported_in_titles(client: FlaskClient, dashboard, api):
    cid = add_histogram(client, dashboard)["id"]
    sid = add_city_slicer(client, dashboard, [cid])
    api.fail_counts = True
    resp = client.post(f"/dashboards/{dashboard}/slicers/{sid}/input", json={"input": "Tamale"})
    assert resp.status_code == 200
    body = client.get(f"/dashboards/{dashboard}/titles").get_json()
    assert body["titles"][cid] == "histogram of age (n=6)"
    assert "count service down" in body["errors"][cid]


def test_unmount(client: FlaskClient, dashboard):
    assert client.delete(f"/dashboards/{dashboard}").status_code == 200
    resp = client.get(f"/dashboards/{dashboard}")
    assert resp.status_code == 404
    assert resp.get_json()["kind"] == "not_found"
