"""HTTP trigger surface: ``POST /scale`` and ``GET /health``."""
import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from fleetscaler.main import health_handler, scale_handler

# A triggered cycle waits at most this many request timeouts for an in-flight one
TRIGGER_WAIT_FACTOR = 3


def create_app(handle, config=None) -> FastAPI:
    """
    Build the FastAPI app around a LoopHandle.

    Health reflects process liveness only; it never depends on cycle outcomes.
    """
    secrets = config.secrets() if config is not None else ()
    trigger_timeout = config.request_timeout * TRIGGER_WAIT_FACTOR if config is not None else None

    app = FastAPI(title="Fleet Autoscaler")

    @app.get("/health")
    async def health():
        return health_handler()

    @app.post("/scale")
    def scale():
        logging.info("Scale request received")
        result = scale_handler(handle, secrets=secrets, timeout=trigger_timeout)
        status_code = result.pop("statusCode", 200)
        return JSONResponse(content=result, status_code=status_code)

    return app
