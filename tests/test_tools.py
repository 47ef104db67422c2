import json

import pytest
from mcp.server.fastmcp.exceptions import ToolError
from mcp.shared.memory import create_connected_server_and_client_session

from perplexity_web.automation import SearchOptions, SearchResult, Source
from perplexity_web.tools import (
    PerplexityTools,
    ProSearchArguments,
    ToolArgumentError,
    _call,
    create_mcp_server,
)


class RecordingAutomation:
    """Records what the tools ask for instead of driving a browser."""

    def __init__(self, init_error: Exception | None = None):
        self.searches: list[tuple[str, SearchOptions]] = []
        self.reinitialized = 0
        self.init_error = init_error

    async def search(self, query, options=None):
        self.searches.append((query, options))
        return SearchResult.ok(
            f"answer to {query}", [Source(title="Example", url="https://example.com")]
        )

    async def reinitialize(self):
        self.reinitialized += 1
        if self.init_error is not None:
            raise self.init_error


async def test_pro_search_prefixes_focus_and_uses_deep_mode():
    automation = RecordingAutomation()
    tools = PerplexityTools(automation)

    payload = await tools.pro_search({"query": "quantum computing", "focus": "academic"})

    (query, options), = automation.searches
    assert "[academic] quantum computing" in query
    assert options.mode == "deep"
    assert payload["success"] is True


async def test_pro_search_without_focus():
    automation = RecordingAutomation()
    await PerplexityTools(automation).pro_search({"query": "quantum computing"})
    assert automation.searches == [("quantum computing", SearchOptions(mode="deep"))]


async def test_search_passes_mode():
    automation = RecordingAutomation()
    payload = await PerplexityTools(automation).search({"query": "hi", "mode": "copilot"})
    assert automation.searches == [("hi", SearchOptions(mode="copilot"))]
    assert payload == {
        "success": True,
        "answer": "answer to hi",
        "sources": [{"title": "Example", "url": "https://example.com"}],
    }


@pytest.mark.parametrize(
    "arguments",
    [
        {"query": ""},
        {"query": "   "},
        {"mode": "concise"},
        {"query": "hi", "mode": "turbo"},
    ],
)
async def test_invalid_search_arguments_rejected_before_search(arguments):
    automation = RecordingAutomation()
    with pytest.raises(ToolArgumentError):
        await PerplexityTools(automation).search(arguments)
    assert automation.searches == []


def test_invalid_focus_rejected():
    with pytest.raises(ValueError):
        ProSearchArguments(query="hi", focus="tiktok")


async def test_empty_query_is_a_tool_error_without_navigation(automation, browser):
    mcp = create_mcp_server(automation)

    async with create_connected_server_and_client_session(mcp._mcp_server) as client:
        result = await client.call_tool("search", {"query": ""})

    assert result.isError
    assert "Invalid parameters" in result.content[0].text
    assert browser.page.gotos == []
    assert browser.launches == []


async def test_unknown_mode_is_a_tool_error():
    automation = RecordingAutomation()
    mcp = create_mcp_server(automation)

    async with create_connected_server_and_client_session(mcp._mcp_server) as client:
        result = await client.call_tool("search", {"query": "hi", "mode": "turbo"})

    assert result.isError
    assert automation.searches == []


async def test_search_result_over_the_wire():
    mcp = create_mcp_server(RecordingAutomation())

    async with create_connected_server_and_client_session(mcp._mcp_server) as client:
        result = await client.call_tool(
            "pro_search", {"query": "quantum computing", "focus": "academic"}
        )

    assert not result.isError
    payload = json.loads(result.content[0].text)
    assert payload["success"] is True
    assert payload["answer"] == "answer to [academic] quantum computing"


async def test_unexpected_failure_is_a_failed_result_not_a_tool_error():
    class Exploding(RecordingAutomation):
        async def search(self, query, options=None):
            raise RuntimeError("boom")

    mcp = create_mcp_server(Exploding())

    async with create_connected_server_and_client_session(mcp._mcp_server) as client:
        result = await client.call_tool("search", {"query": "hi"})

    assert not result.isError
    payload = json.loads(result.content[0].text)
    assert payload == {"success": False, "error": "Tool execution failed: boom"}


async def test_call_raises_tool_error_for_bad_arguments():
    with pytest.raises(ToolError, match="Invalid parameters"):
        await _call(PerplexityTools(RecordingAutomation()).search({"query": ""}))


async def test_call_serializes_payload():
    async def payload():
        return {"success": True, "answer": "x", "sources": []}

    assert json.loads(await _call(payload())) == {"success": True, "answer": "x", "sources": []}


async def test_init_reports_success_and_failure():
    ok = await PerplexityTools(RecordingAutomation()).init()
    assert ok == {"success": True, "message": "Perplexity session initialized"}

    failed = await PerplexityTools(RecordingAutomation(RuntimeError("no chromium"))).init()
    assert failed == {"success": False, "error": "no chromium"}


async def test_init_replaces_broken_session(automation, browser):
    await automation.initialize()
    old = automation.sessions.session
    browser.contexts[0].close_error = RuntimeError("Target closed")

    result = await PerplexityTools(automation).init()

    assert result["success"] is True
    assert automation.sessions.session is not old
    assert len(browser.contexts) == 2


async def test_mcp_server_registers_tools():
    mcp = create_mcp_server(RecordingAutomation())
    tools = {tool.name: tool for tool in await mcp.list_tools()}
    assert set(tools) == {"search", "pro_search", "init"}
    assert "query" in tools["search"].inputSchema["properties"]
    assert "focus" in tools["pro_search"].inputSchema["properties"]
