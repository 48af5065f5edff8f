"""
Route Optimizer — FastAPI Server
=================================

RESTful API for validating spreadsheet addresses and ordering them into a route.

Endpoints:
    POST   /addresses       Upload an .xlsx file; validate every address
    GET    /addresses       Current address set with counts
    DELETE /addresses       Start over (clear addresses and route)
    POST   /route           Order the validated addresses
    GET    /export          Download the processed addresses as .xlsx
    GET    /health          Health check / readiness check

Run:
    uvicorn api:app --reload              # Dev (http://localhost:8000)
    uvicorn api:app --host 0.0.0.0        # Production

Docs:
    http://localhost:8000/docs             # Swagger UI (auto-generated)
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Response, UploadFile
from pydantic import BaseModel

from route_optimizer import __version__
from route_optimizer.exceptions import (
    InsufficientAddressesError,
    RouteOptimizerError,
    ServiceConfigurationError,
    ServiceResponseError,
    SpreadsheetError,
)
from route_optimizer.models import AddressRecord
from route_optimizer.pipeline import AddressSession
from route_optimizer.spreadsheet import EXPORT_FILENAME

load_dotenv()

MAX_UPLOAD_BYTES = 10 * 1_048_576
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# ─── Application Lifespan ───────────────────────────────────────────

_session: AddressSession | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the session (settings + AI client) on startup."""
    global _session  # noqa: PLW0603
    _session = AddressSession()
    yield
    _session = None


# ─── FastAPI App ─────────────────────────────────────────────────────

app = FastAPI(
    title="Route Optimizer API",
    description=(
        "Upload a spreadsheet of addresses, validate them with an AI service, "
        "and compute a visiting order over the valid ones."
    ),
    version=__version__,
    lifespan=lifespan,
)


# ─── Response Schemas ───────────────────────────────────────────────


class AddressesResponse(BaseModel):
    """The current address set."""

    total: int
    validated_count: int
    error_count: int
    addresses: list[AddressRecord]


class RouteResponse(BaseModel):
    """Addresses in visiting order; the first one is the start."""

    stops: int
    route: list[AddressRecord]


class HealthResponse(BaseModel):
    status: str
    version: str
    addresses_loaded: int


# ─── Helpers ─────────────────────────────────────────────────────────


def _get_session() -> AddressSession:
    if _session is None:
        raise HTTPException(status_code=503, detail="Session not initialised")
    return _session


def _addresses_response(session: AddressSession) -> AddressesResponse:
    return AddressesResponse(
        total=len(session.records),
        validated_count=session.validated_count,
        error_count=session.error_count,
        addresses=session.records,
    )


def _http_error(error: RouteOptimizerError) -> HTTPException:
    """Map a pipeline error to its HTTP status; the message is user-safe."""
    if isinstance(error, ServiceConfigurationError):
        status = 503
    elif isinstance(error, SpreadsheetError):
        status = 422
    elif isinstance(error, InsufficientAddressesError):
        status = 400
    elif isinstance(error, ServiceResponseError):
        status = 502
    else:
        status = 500
    return HTTPException(
        status_code=status, detail={"code": error.code, "message": str(error)}
    )


# ─── Endpoints ───────────────────────────────────────────────────────


@app.post(
    "/addresses",
    summary="Upload and validate an address spreadsheet",
    tags=["Addresses"],
    responses={
        413: {"description": "File too large (max 10 MB)"},
        422: {"description": "Spreadsheet has no usable address rows"},
        502: {"description": "The AI service failed for a batch"},
        503: {"description": "AI service not configured"},
    },
)
async def upload_addresses(file: UploadFile) -> AddressesResponse:
    """Replace the address set with the rows of an uploaded `.xlsx` file.

    Every address ends up **VALIDATED** (structured fields filled in) or
    **ERROR** (with a reason). If any AI batch fails, the set is cleared.
    """
    if file.size and file.size > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large (max 10 MB)")

    content = await file.read()
    session = _get_session()
    try:
        await session.ingest(content)
    except RouteOptimizerError as e:
        raise _http_error(e) from e
    return _addresses_response(session)


@app.get("/addresses", summary="Current address set", tags=["Addresses"])
def list_addresses() -> AddressesResponse:
    return _addresses_response(_get_session())


@app.delete("/addresses", summary="Start over", tags=["Addresses"])
def reset_addresses() -> AddressesResponse:
    session = _get_session()
    session.reset()
    return _addresses_response(session)


@app.post(
    "/route",
    summary="Order the validated addresses into a route",
    tags=["Route"],
    responses={
        400: {"description": "Fewer than two validated addresses"},
        502: {"description": "The AI service failed to optimize the route"},
    },
)
async def optimize_route() -> RouteResponse:
    """Ask the AI for an efficient visiting order.

    If the proposed order does not cover every validated address exactly
    once, the original order is returned instead.
    """
    session = _get_session()
    try:
        route = await session.optimize()
    except RouteOptimizerError as e:
        raise _http_error(e) from e
    return RouteResponse(stops=len(route), route=route)


@app.get(
    "/export",
    summary="Download the processed addresses",
    tags=["Addresses"],
    response_class=Response,
    responses={200: {"content": {XLSX_MEDIA_TYPE: {}}}},
)
def export_addresses() -> Response:
    session = _get_session()
    return Response(
        content=session.export(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@app.get(
    "/health",
    summary="Health check",
    tags=["System"],
    responses={503: {"description": "Session not yet initialised"}},
)
def health_check() -> HealthResponse:
    session = _get_session()
    return HealthResponse(
        status="healthy",
        version=__version__,
        addresses_loaded=len(session.records),
    )


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(app, host=os.getenv("APP_HOST", "127.0.0.1"), port=int(os.getenv("APP_PORT", "8000")))
