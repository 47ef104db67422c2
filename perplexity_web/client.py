"""
Client for the Perplexity HTTP relay.

Used by the Streamlit panel and by scripts running on another machine than
the browser. Every call returns the relay's JSON; transport and HTTP errors
are folded into ``{"success": False, "error": ...}`` so callers handle a
single shape.
"""

import os
from typing import Optional

import requests
import structlog

from .config import DEFAULT_HTTP_PORT

logger = structlog.stdlib.get_logger(component=__name__)

DEFAULT_SERVER_URL = f"http://localhost:{DEFAULT_HTTP_PORT}"

HEALTH_TIMEOUT = 2
SEARCH_TIMEOUT = 120
INIT_TIMEOUT = 30


def _error_payload(e: requests.RequestException) -> dict:
    # Prefer the relay's own message over the HTTP status line.
    response = e.response
    if response is not None:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            return {"success": False, "error": body["error"]}
    return {"success": False, "error": str(e) or e.__class__.__name__}


class RelayClient:
    """
    Thin wrapper around the relay endpoints.

    Args:
        server_url: Relay base url; defaults to $PERPLEXITY_SERVER_URL or
            http://localhost:3333
        session: Optional requests.Session to reuse connections
    """

    def __init__(self, server_url: Optional[str] = None, session: Optional[requests.Session] = None):
        url = server_url or os.environ.get("PERPLEXITY_SERVER_URL") or DEFAULT_SERVER_URL
        self.server_url = url.rstrip("/")
        self.http = session or requests.Session()

    def is_server_running(self) -> bool:
        try:
            response = self.http.get(f"{self.server_url}/health", timeout=HEALTH_TIMEOUT)
            return response.ok and response.json().get("status") == "ok"
        except (requests.RequestException, ValueError):
            return False

    def search(self, query: str, mode: str = "concise") -> dict:
        try:
            response = self.http.post(
                f"{self.server_url}/search",
                json={"query": query, "mode": mode},
                timeout=SEARCH_TIMEOUT,
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.warning("Search request failed", error=str(e))
            return _error_payload(e)

    def pro_search(self, query: str, focus: Optional[str] = None) -> dict:
        """Deep-mode search with the focus tag prefixed, as the MCP pro_search tool does."""
        if focus:
            query = f"[{focus}] {query}"
        return self.search(query, mode="deep")

    def initialize(self) -> dict:
        try:
            response = self.http.post(f"{self.server_url}/init", json={}, timeout=INIT_TIMEOUT)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.warning("Init request failed", error=str(e))
            return _error_payload(e)

    def list_screenshots(self) -> list[str]:
        try:
            response = self.http.get(
                f"{self.server_url}/debug/screenshots", timeout=HEALTH_TIMEOUT
            )
            response.raise_for_status()
            return response.json().get("screenshots", [])
        except (requests.RequestException, ValueError) as e:
            logger.warning("Listing screenshots failed", error=str(e))
            return []
