from typing import Any, Dict, List, Mapping, Optional

import pandas as pd
import pytest
from flask import Flask
from flask.testing import FlaskClient

from workbench.app import create_app
from workbench.config import TestingConfig
from workbench.errors import RequestError
from workbench.services.metadata import ProjectMetadata
from workbench.services.sessions import DashboardSessionStore
from workbench.utils.filter_params import FilterDescriptor

PROJECT = {
    "id": "p1",
    "title": "Survey",
    "metadata_json": {
        "rows": 6,
        "cols": 5,
        "metadata": [
            {"name": "age", "type": "numerical", "missing_count": 1, "unique_values": 5},
            {"name": "income", "type": "numerical", "missing_count": 0, "unique_values": 6},
            {"name": "city", "type": "categorical", "missing_count": 2, "unique_values": 3},
            {"name": "segment", "type": "categorical", "missing_count": 0, "unique_values": 2},
            {"name": "joined", "type": "temporal", "missing_count": 0, "unique_values": 6},
        ],
    },
}

ROWS = [
    {"age": 22, "income": 1000, "city": "Accra", "segment": "A", "joined": "2024-01-01"},
    {"age": 35, "income": 2500, "city": "Kumasi", "segment": "B", "joined": "2024-02-01"},
    {"age": 41, "income": 3000, "city": "Accra", "segment": "A", "joined": "2024-03-01"},
    {"age": 58, "income": 4200, "city": "Tamale", "segment": "B", "joined": "2024-04-01"},
    {"age": 63, "income": 3900, "city": "Accra", "segment": "B", "joined": "2024-05-01"},
    {"age": None, "income": 1500, "city": "Kumasi", "segment": "A", "joined": "2024-06-01"},
]


def descriptor_from_payload(payload: Mapping[str, Any]) -> FilterDescriptor:
    descriptor = FilterDescriptor()
    for col, values in (payload.get("selections") or {}).items():
        descriptor = descriptor.with_selection(col, values)
    for col, bounds in (payload.get("ranges") or {}).items():
        descriptor = descriptor.with_range(col, bounds.get("min"), bounds.get("max"))
    return descriptor


class FakeApi:
    """In-process stand-in for the remote workbench API."""

    def __init__(self, project: Optional[Dict[str, Any]] = None, rows: Optional[List[Dict[str, Any]]] = None):
        self.project = project or PROJECT
        self.rows = rows if rows is not None else ROWS
        self.count_calls: List[Dict[str, Any]] = []
        self.chart_calls: List[Dict[str, Any]] = []
        self.prep_calls: List[tuple] = []
        self.fail_counts = False
        self.fail_prep_on: Optional[str] = None

    def get_project(self, project_id, token=None):
        return dict(self.project, id=project_id)

    def project_metadata(self, project_id, token=None):
        return ProjectMetadata.from_project(self.get_project(project_id, token))

    def unique_values(self, project_id, column, token=None):
        return sorted({str(r[column]) for r in self.rows if r.get(column) is not None})

    def raw_data(self, project_id, token=None):
        return list(self.rows)

    def filtered_count(self, project_id, payload, token=None):
        self.count_calls.append(payload)
        if self.fail_counts:
            raise RequestError("count service down", status=503)
        df = pd.DataFrame(self.rows)
        return int(len(descriptor_from_payload(payload).apply(df)))

    def generate_chart(self, project_id, chart_type, columns, hypertune_params, token=None):
        self.chart_calls.append(
            {"chart_type": chart_type, "columns": dict(columns), "hypertune_params": dict(hypertune_params)}
        )
        return {
            "chart_data": {
                "data": [{"type": "bar", "x": ["a", "b"], "y": [1, 2], "marker": {"color": "blue"}}],
                "layout": {"title": {"text": "server title"}},
            },
            "analysis_text": f"{chart_type} generated",
        }

    def _prep(self, op, project_id, column, *args):
        self.prep_calls.append((op, column) + args)
        if self.fail_prep_on == column:
            raise RequestError(f"{op} failed", status=500, detail="boom")
        return {"message": f"{op} ok", "column": column}

    def impute(self, project_id, column, method, constant_value=None, token=None):
        return self._prep("impute", project_id, column, method, constant_value)

    def remove_column(self, project_id, column, token=None):
        return self._prep("remove", project_id, column)

    def detect_outliers(self, project_id, column, token=None):
        return self._prep("detect", project_id, column)

    def treat_outliers(self, project_id, column, method, token=None):
        return self._prep("treat", project_id, column, method)

    def recode_column(self, project_id, column, recode_map, token=None):
        return self._prep("recode", project_id, column, dict(recode_map))


@pytest.fixture
def api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def metadata() -> ProjectMetadata:
    return ProjectMetadata.from_project(PROJECT)


@pytest.fixture
def app(api: FakeApi) -> Flask:
    app = create_app(TestingConfig)
    app.extensions["api"] = api
    app.extensions["sessions"] = DashboardSessionStore(app.config, api)
    return app


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    return app.test_client()
