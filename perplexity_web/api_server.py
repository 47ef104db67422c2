"""
HTTP relay for the Perplexity automation.

A small FastAPI app for clients that cannot speak MCP (the Streamlit panel,
scripts). It shares the PerplexityAutomation, and therefore the browser
session and its one-search-at-a-time lock, with the MCP tools.

Endpoints:
    GET  /health              {"status": "ok", "service": name}
    GET  /debug/screenshots   {"screenshots": [filenames]}
    POST /search              {query, mode} -> SearchResult JSON
    POST /init                {} -> {success, message} | {success, error}
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .automation import PerplexityAutomation, SearchOptions
from .automation.diagnostics import list_screenshots
from .automation.types import SearchMode
from .config import SERVICE_NAME

logger = structlog.stdlib.get_logger(component=__name__)


class SearchRequest(BaseModel):
    query: Optional[str] = None
    mode: SearchMode = "concise"


class InitRequest(BaseModel):
    pass


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def create_api_server(
    automation: PerplexityAutomation,
    service_name: str = SERVICE_NAME,
    close_on_shutdown: bool = True,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("HTTP relay starting", service=service_name)
        yield
        if close_on_shutdown:
            logger.info("HTTP relay shutting down, closing browser session")
            await automation.close()

    app = FastAPI(title=service_name, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, f"Invalid request: {exc.errors()}")

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "service": service_name}

    @app.get("/debug/screenshots")
    async def screenshots() -> dict:
        return {"screenshots": list_screenshots(automation.config.screenshots_dir)}

    @app.post("/search")
    async def search(body: SearchRequest):
        if body.query is None or not body.query.strip():
            return _error(status.HTTP_400_BAD_REQUEST, "Query is required")
        try:
            result = await automation.search(body.query, SearchOptions(mode=body.mode))
        except Exception as e:
            logger.error("Search endpoint failed", error=str(e))
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e) or "Unknown error")
        return result.to_payload()

    @app.post("/init")
    async def init(body: Optional[InitRequest] = None):
        try:
            await automation.reinitialize()
        except Exception as e:
            logger.error("Init endpoint failed", error=str(e))
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e) or "Unknown error")
        return {"success": True, "message": "Session initialized"}

    return app
