"""HTTP interface: PPE tiles and feature ingestion.

Routes (all below ``/api/v1``):

* ``GET /tiles/{zoom}/{x}/{y}.png`` renders one tile.
* ``POST /features`` stores one feature.
* ``GET /legend`` describes the colour ramp.

Tile and feature routes require the ``SRS-APIKey`` header to hold one
of the configured API keys. Rendering runs on a bounded thread pool
owned by the application.
"""
from __future__ import annotations

import asyncio
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from . import colors, config
from .exceptions import (ApiError, AuthError, InvalidFeatureError,
                         InvalidTileAddressError, PpeTilesError, RequestError)
from .geo import validate_tile_address
from .models import FeatureIn
from .rasterizer import render_tile
from .resolution import ResolutionFilter
from .store import FeatureStore

logger = logging.getLogger(__name__)

API_KEY_HEADER = "SRS-APIKey"
API_VERSION = 1.0

router = APIRouter(prefix="/api/v1")


def api_response(success: bool, data: Optional[dict] = None,
                 error: Optional[str] = None, details=None) -> dict:
    """Standard response body shared by every JSON route."""
    response = {"success": success, "version": API_VERSION}
    if success and data:
        response.update(data)
    if not success:
        response["error"] = error or "Unknown error"
        if details:
            response["details"] = details
    return response


def require_api_key(request: Request) -> str:
    """Dependency rejecting requests without a configured API key."""
    api_key = request.headers.get(API_KEY_HEADER)
    if not api_key:
        raise AuthError("Missing API key")
    if api_key not in config.api_keys():
        raise AuthError("Invalid API key")
    return api_key


def parse_feature_body(body: bytes, content_encoding: Optional[str] = None) -> FeatureIn:
    """Decode and validate a feature submitted as JSON.

    Raises
    ------
    RequestError
        For compressed or malformed bodies and failed validation.
    """
    if content_encoding == "gzip":
        raise RequestError("Gzip encoding not implemented in this version")
    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise RequestError("Malformed JSON in request body") from exc
    try:
        return FeatureIn.model_validate(payload)
    except ValidationError as exc:
        raise RequestError("Invalid request data", details=json.loads(exc.json())) from exc


@router.get("/tiles/{zoom}/{x}/{y}.png", dependencies=[Depends(require_api_key)])
async def get_tile(zoom: str, x: str, y: str, request: Request):
    tile = validate_tile_address(zoom, x, y, min_zoom=0,
                                 max_zoom=int(config.get("max_zoom_served")))
    state = request.app.state
    loop = asyncio.get_running_loop()
    png = await loop.run_in_executor(
        state.executor, render_tile, tile.z, tile.x, tile.y, state.store)
    return Response(content=png, media_type="image/png")


@router.post("/features", dependencies=[Depends(require_api_key)])
async def post_feature(request: Request):
    feature = parse_feature_body(await request.body(),
                                 request.headers.get("content-encoding"))
    feature_id = await run_in_threadpool(request.app.state.store.add_feature, feature)
    return api_response(True, {"message": "Feature added successfully", "id": feature_id})


@router.get("/legend")
async def get_legend():
    return api_response(True, {"legend": [
        {"ppe": value, "color": color} for value, color in colors.legend()]})


async def _api_error(request: Request, exc: ApiError):
    return JSONResponse(api_response(False, error=str(exc), details=exc.details),
                        status_code=exc.status_code)


async def _bad_request(request: Request, exc: PpeTilesError):
    return JSONResponse(api_response(False, error=str(exc)), status_code=400)


async def _server_error(request: Request, exc: PpeTilesError):
    logger.error("Error handling %s: %s", request.url.path, exc)
    return JSONResponse(api_response(False, error=str(exc)), status_code=500)


def create_app(store: Optional[FeatureStore] = None, workers: Optional[int] = None) -> FastAPI:
    """Build the FastAPI application.

    Parameters
    ----------
    store : FeatureStore, optional
        Feature store to serve from. The caller keeps ownership of an
        injected store; without one the application opens a store at
        the ``database_path`` setting on startup and closes it on
        shutdown.
    workers : int, optional
        Size of the render pool, by default the ``render_workers``
        setting.

    Returns
    -------
    fastapi.FastAPI
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = store is None
        app.state.store = store or FeatureStore(
            config.get("database_path"),
            ResolutionFilter(int(config.get("min_zoom")), int(config.get("max_zoom"))),
        )
        if owned:
            app.state.store.open()
        app.state.executor = ThreadPoolExecutor(
            max_workers=workers or int(config.get("render_workers")),
            thread_name_prefix="ppetiles-render")
        try:
            yield
        finally:
            app.state.executor.shutdown(wait=True)
            if owned:
                app.state.store.close()

    app = FastAPI(title="ppetiles", version=str(API_VERSION), lifespan=lifespan)
    app.include_router(router)
    app.add_exception_handler(ApiError, _api_error)
    app.add_exception_handler(InvalidTileAddressError, _bad_request)
    app.add_exception_handler(InvalidFeatureError, _bad_request)
    app.add_exception_handler(PpeTilesError, _server_error)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
