"""HTTP endpoint serving the latest snapshot of every sampled device.

    GET /  ->  {"sda": {"timestamp": "...", "reads_per_second": 10.0, ...}, ...}

Devices that have not completed a sample yet are omitted.
"""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from blkstat import __version__
from blkstat.core.schemas import ServerConfig
from blkstat.monitoring.store import SnapshotStore

logger = logging.getLogger(__name__)


def create_app(store: SnapshotStore) -> FastAPI:
    """Build the FastAPI application reading from ``store``."""
    app = FastAPI(title="blkstat", version=__version__, docs_url=None, redoc_url=None)
    app.state.store = store

    @app.get("/")
    def stats() -> JSONResponse:
        snapshots = store.read_all()
        return JSONResponse(
            {device: snapshot.to_json_dict() for device, snapshot in snapshots.items()}
        )

    return app


def create_server(app: FastAPI, config: ServerConfig, log_level: str = "info") -> uvicorn.Server:
    """Wrap ``app`` in a uvicorn server bound to the configured address.

    uvicorn's own logging configuration is disabled so that records flow
    through the handlers installed by setup_logging.
    """
    uv_config = uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        log_level=log_level.lower(),
        log_config=None,
    )
    logger.info(f"Serving on http://{config.host}:{config.port}/")
    return uvicorn.Server(uv_config)
