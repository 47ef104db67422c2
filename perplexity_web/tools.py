"""
Perplexity MCP Tools

Exposes the automation as Model Context Protocol tools:

- search(query, mode="concise"): ask Perplexity, return answer + sources
- pro_search(query, focus=None): deep-mode search with an optional focus tag
- init(): drop the browser session and open a fresh one

Every tool returns JSON text. Search tools return the SearchResult shape
({success, answer?, sources, error?, debug?}); init returns
{success, message} or {success: false, error}.

Arguments are validated with pydantic before the browser is touched. Invalid
arguments come back as a tool error (CallToolResult.isError is true and the
text names the invalid parameters). Everything that fails at runtime, a
search that went wrong or an unexpected exception in a tool, is a normal
result with success=false, so isError always means "arguments rejected".
"""

import json
from typing import Literal, Optional

import structlog
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import BaseModel, Field, ValidationError, field_validator

from .automation import PerplexityAutomation, SearchOptions
from .automation.types import SearchMode

logger = structlog.stdlib.get_logger(component=__name__)

Focus = Literal["internet", "academic", "writing", "wolfram", "youtube", "reddit"]


class ToolArgumentError(ValueError):
    """Tool arguments failed validation; nothing was sent to the browser."""
    pass


class SearchArguments(BaseModel):
    query: str = Field(min_length=1, description="The search query to send to Perplexity")
    mode: SearchMode = Field(
        default="concise",
        description="Search mode: concise (quick), copilot (interactive), or deep (thorough)",
    )

    @field_validator("query")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be blank")
        return value


class ProSearchArguments(BaseModel):
    query: str = Field(min_length=1, description="The detailed search query")
    focus: Optional[Focus] = Field(default=None, description="Search focus area")

    @field_validator("query")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be blank")
        return value

    def search_query(self) -> str:
        # Focus is a hint carried in the query text, not a page setting.
        if self.focus:
            return f"[{self.focus}] {self.query}"
        return self.query


def _parse(model: type[BaseModel], arguments: dict) -> BaseModel:
    try:
        return model.model_validate(arguments)
    except ValidationError as e:
        raise ToolArgumentError(f"Invalid parameters: {e}") from e


class PerplexityTools:
    """Tool implementations, independent of the MCP transport."""

    def __init__(self, automation: PerplexityAutomation):
        self.automation = automation

    async def search(self, arguments: dict) -> dict:
        args = _parse(SearchArguments, arguments)
        result = await self.automation.search(args.query, SearchOptions(mode=args.mode))
        return result.to_payload()

    async def pro_search(self, arguments: dict) -> dict:
        args = _parse(ProSearchArguments, arguments)
        result = await self.automation.search(args.search_query(), SearchOptions(mode="deep"))
        return result.to_payload()

    async def init(self) -> dict:
        try:
            await self.automation.reinitialize()
        except Exception as e:
            logger.error("Session initialization failed", error=str(e))
            return {"success": False, "error": str(e) or e.__class__.__name__}
        return {"success": True, "message": "Perplexity session initialized"}


async def _call(coro) -> str:
    try:
        payload = await coro
    except ToolArgumentError as e:
        raise ToolError(str(e)) from e
    except Exception as e:
        logger.exception("Tool execution failed")
        payload = {"success": False, "error": f"Tool execution failed: {e}"}
    return json.dumps(payload, indent=2)


def create_mcp_server(automation: PerplexityAutomation) -> FastMCP:
    """Build a FastMCP server whose tools all share `automation`'s browser session."""
    tools = PerplexityTools(automation)

    mcp = FastMCP(
        name="perplexity-web-server",
        instructions=r"""
Tool for searching the web through Perplexity.
Results are JSON with `answer` text and a `sources` list of {title, url}.
Cite sources by url. Searches run one at a time and can take up to two minutes.
If searches keep failing, call `init` to restart the browser session.
""".strip(),
    )

    @mcp.tool(
        name="search",
        title="Search with Perplexity",
        description="Search the web using Perplexity AI. Returns comprehensive answers with sources.",
    )
    async def search(query: str, mode: SearchMode = "concise") -> str:
        return await _call(tools.search({"query": query, "mode": mode}))

    @mcp.tool(
        name="pro_search",
        title="Pro search with Perplexity",
        description="Perform a Pro search with more detailed analysis. Always runs in deep mode.",
    )
    async def pro_search(query: str, focus: Optional[Focus] = None) -> str:
        return await _call(tools.pro_search({"query": query, "focus": focus}))

    @mcp.tool(
        name="init",
        title="Initialize Perplexity session",
        description="Initialize or reinitialize the Perplexity browser session. Use if experiencing connection issues.",
    )
    async def init() -> str:
        return await _call(tools.init())

    return mcp
