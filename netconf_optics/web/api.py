"""REST API endpoints for the NETCONF optics exporter."""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, Field

from .. import session as netconf
from ..errors import NetconfError
from ..hosts import HostParameters
from ..optics import OPTICS_REQUEST, extract_components

logger = logging.getLogger(__name__)

router = APIRouter(tags=["netconf"])


# ============================================================================
# Request/Response Models
# ============================================================================

class AddHostRequest(BaseModel):
    """Register a device for polling."""
    host: str
    port: int = Field(ge=1, le=65535)
    user: str
    password: str


# ============================================================================
# Host Registry Endpoints
# ============================================================================

@router.post("/add_host", response_class=PlainTextResponse)
async def add_host(body: AddHostRequest, request: Request):
    """Add or replace a host in the registry."""
    request.app.state.hosts.add(
        body.host,
        HostParameters(port=body.port, user=body.user, password=body.password),
    )
    return f"{body.host} added successfully"


@router.get("/get_hosts", response_model=List[str])
async def get_hosts(request: Request):
    """List registered host names."""
    return request.app.state.hosts.names()


# ============================================================================
# Device Data Endpoints
# ============================================================================

@router.get("/get_json/{host}")
async def get_json(host: str, request: Request) -> List[Dict[str, Any]]:
    """Poll a host's transceivers, update the gauges and return the components."""
    parameters = request.app.state.hosts.get(host)
    if parameters is None:
        raise HTTPException(status_code=404, detail=f"Unknown host: {host}")

    settings = request.app.state.netconf
    try:
        reply = await netconf.fetch(
            host,
            parameters.port,
            parameters.user,
            parameters.password,
            OPTICS_REQUEST,
            subsystem=settings.subsystem,
            connect_timeout=settings.connect_timeout,
        )
    except NetconfError as e:
        logger.error(f"NETCONF request to {host} failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    components = extract_components(reply)
    request.app.state.metrics.update(components, host)
    return components


@router.get("/metrics")
async def metrics(request: Request):
    """Prometheus exposition of the optic gauges and request metrics."""
    return Response(
        content=generate_latest(request.app.state.metrics.registry),
        media_type=CONTENT_TYPE_LATEST,
    )
