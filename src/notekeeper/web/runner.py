"""Uvicorn server runner."""

import copy

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from notekeeper.app import App
from notekeeper.config import Config
from notekeeper.web.server import create_fastapi_app


def build_log_config(debug: bool) -> dict:
    """Uvicorn logging config with compact formats; access log only in debug mode."""
    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config["formatters"]["access"]["fmt"] = '%(asctime)s - "%(request_line)s" %(status_code)s'
    log_config["formatters"]["default"]["fmt"] = "%(asctime)s - %(levelname)s - %(message)s"
    log_config["loggers"]["uvicorn.access"]["level"] = "INFO" if debug else "WARNING"
    return log_config


def run_server(app: App, config: Config) -> None:
    fastapi_app = create_fastapi_app(app, config)
    uvicorn.run(
        fastapi_app,
        host=config.host,
        port=config.port,
        log_config=build_log_config(config.debug),
        proxy_headers=True,
    )
