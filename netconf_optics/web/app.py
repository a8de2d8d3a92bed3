"""FastAPI web application for the NETCONF optics exporter."""

import logging
import time
from typing import Optional

from fastapi import FastAPI, Request
from prometheus_client import CollectorRegistry

from .. import __version__
from ..config import Config
from ..hosts import HostParameters, HostRegistry
from ..metrics import OpticMetrics, RequestMetrics
from .api import router as api_router

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[Config] = None,
    registry: Optional[CollectorRegistry] = None,
    title: str = "NETCONF Optics Exporter",
    debug: bool = False,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Loaded configuration; defaults are used when omitted
        registry: Prometheus registry for the optic gauges and request metrics
            (a private one if omitted)
        title: Application title
        debug: Enable debug mode

    Returns:
        Configured FastAPI application
    """
    config = config or Config()

    app = FastAPI(
        title=title,
        description="NETCONF transceiver poller and Prometheus exporter",
        version=__version__,
        debug=debug,
    )

    hosts = HostRegistry()
    for entry in config.hosts:
        hosts.add(entry.host, HostParameters(port=entry.port, user=entry.user, password=entry.password))

    app.state.hosts = hosts
    app.state.metrics = OpticMetrics(registry)
    app.state.requests = RequestMetrics(app.state.metrics.registry)
    app.state.netconf = config.netconf

    @app.middleware("http")
    async def record_request(request: Request, call_next):
        """Count and time every request by route template, method and status."""
        started = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        request.app.state.requests.observe(
            endpoint, request.method, response.status_code, time.perf_counter() - started
        )
        return response

    app.include_router(api_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    logger.info(f"Web interface ready with {len(hosts)} preconfigured host(s)")
    return app


def run_server(config: Config) -> None:
    """Run the web server.

    Args:
        config: Loaded configuration
    """
    import uvicorn

    app = create_app(config)

    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.lower(),
    )
