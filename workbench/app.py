"""Application factory for the workbench backend."""

from __future__ import annotations

import logging

from typing import Any, Mapping, Optional, Union

from flask import Flask

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("workbench")

from .config import Config
from .errors import WorkbenchError
from .routes.prep import prep_bp
from .routes.reporting import bp as reporting_bp
from .routes.reporting.helpers import error_response
from .services.api_client import ApiClient
from .services.sessions import DashboardSessionStore


def create_app(
    config_object: Optional[Union[str, Mapping[str, Any], type]] = None,
) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    if config_object is None:
        app.config.from_object(Config)
    elif isinstance(config_object, Mapping):
        app.config.from_object(Config)
        app.config.from_mapping(config_object)
    else:
        app.config.from_object(config_object)

    api = ApiClient(app.config["API_URL"], app.config["API_TIMEOUT"])
    sessions = DashboardSessionStore(app.config, api)

    app.extensions["api"] = api
    app.extensions["sessions"] = sessions

    app.register_blueprint(reporting_bp)
    app.register_blueprint(prep_bp)
    app.register_error_handler(WorkbenchError, error_response)

    logger.info("Workbench backend using %s (counts: %s)", api.base_url, app.config["COUNT_BACKEND"])
    return app


__all__ = ["create_app"]
