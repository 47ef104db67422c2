"""
Configuration for the Perplexity automation and its relay surfaces.

Two immutable ``chz`` classes hold every tunable the system uses:

- AutomationConfig: the target site, the persistent browser profile, and the
  timing and threshold constants used by submission, polling and extraction.
- ServerConfig: how the process exposes the automation (HTTP port, MCP stdio
  transport, startup warmup).

Environment Variables:
----------------------
- MCP_HTTP_PORT: HTTP relay port (default 3333)
- PERPLEXITY_USER_DATA_DIR: persistent profile directory
- PERPLEXITY_HEADLESS: "1"/"true" to run Chromium headless
- PERPLEXITY_SCREENSHOTS_DIR: where diagnostic screenshots are written
"""

import os

import chz

DEFAULT_HTTP_PORT = 3333
SERVICE_NAME = "perplexity-mcp-server"


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@chz.chz(typecheck=True)
class AutomationConfig:
    """
    Settings for driving the Perplexity web UI.

    All durations are in milliseconds, matching the units Playwright expects.
    """

    base_url: str = chz.field(
        default="https://www.perplexity.ai",
        doc="Page loaded at session start and before every search",
    )
    site_domain: str = chz.field(
        default="perplexity.ai",
        doc="Links containing this domain are not reported as sources",
    )
    user_data_dir: str = chz.field(
        default="./perplexity-user-data",
        doc="Persistent Chromium profile; keeps login cookies across restarts",
    )
    headless: bool = chz.field(default=False, doc="Run Chromium without a window")
    viewport_width: int = chz.field(default=1280, doc="Viewport width in pixels")
    viewport_height: int = chz.field(default=800, doc="Viewport height in pixels")
    locale: str = chz.field(default="en-US", doc="Browser locale")
    screenshots_dir: str = chz.field(
        default="./debug-screenshots",
        doc="Directory for diagnostic screenshots",
    )

    navigation_timeout_ms: int = chz.field(default=30_000, doc="page.goto timeout")
    settle_ms: int = chz.field(
        default=2_000, doc="Fixed wait after the initial navigation"
    )
    renavigate_settle_ms: int = chz.field(
        default=1_000, doc="Fixed wait after navigating for a search"
    )
    lookup_timeout_ms: int = chz.field(
        default=2_000,
        doc="Per-selector visibility timeout for cookie/sign-in/mode lookups",
    )
    input_timeout_ms: int = chz.field(
        default=5_000, doc="Per-selector visibility timeout for the search input"
    )
    submit_timeout_ms: int = chz.field(
        default=1_000, doc="Per-selector visibility timeout for the submit button"
    )
    mode_menu_settle_ms: int = chz.field(
        default=500, doc="Wait after opening the mode menu and after picking a mode"
    )
    type_delay_ms: int = chz.field(
        default=30, doc="Delay between keystrokes while typing the query"
    )

    poll_interval_ms: int = chz.field(
        default=2_000, doc="Wait between completion-indicator checks"
    )
    poll_max_attempts: int = chz.field(
        default=45, doc="Completion checks before giving up (soft timeout)"
    )
    poll_check_timeout_ms: int = chz.field(
        default=1_000, doc="Visibility timeout of a single completion check"
    )
    poll_snapshot_every: int = chz.field(
        default=10, doc="Record a diagnostic screenshot every N attempts"
    )
    post_completion_settle_ms: int = chz.field(
        default=2_000, doc="Wait after completion before extracting"
    )

    min_answer_chars: int = chz.field(
        default=100, doc="Minimum text length of an answer container"
    )
    min_fallback_chars: int = chz.field(
        default=50, doc="Minimum text length of the longest <main> child"
    )
    min_line_chars: int = chz.field(
        default=20, doc="Minimum stripped length of a line in the page-text fallback"
    )
    max_fallback_lines: int = chz.field(
        default=30, doc="Lines kept by the page-text fallback"
    )
    max_link_scan: int = chz.field(default=15, doc="Hyperlinks inspected for sources")
    max_sources: int = chz.field(default=10, doc="Sources reported per result")
    max_title_scan_chars: int = chz.field(
        default=300, doc="Links with longer text are skipped as non-citations"
    )
    max_title_chars: int = chz.field(default=200, doc="Source titles are truncated to this")

    @classmethod
    def from_env(cls, **overrides) -> "AutomationConfig":
        values: dict = {
            "headless": _env_flag("PERPLEXITY_HEADLESS", False),
        }
        if user_data_dir := os.environ.get("PERPLEXITY_USER_DATA_DIR"):
            values["user_data_dir"] = user_data_dir
        if screenshots_dir := os.environ.get("PERPLEXITY_SCREENSHOTS_DIR"):
            values["screenshots_dir"] = screenshots_dir
        values.update(overrides)
        return cls(**values)


@chz.chz(typecheck=True)
class ServerConfig:
    """How the process exposes the automation."""

    host: str = chz.field(default="127.0.0.1", doc="HTTP bind address")
    port: int = chz.field(default=DEFAULT_HTTP_PORT, doc="HTTP relay port")
    service_name: str = chz.field(default=SERVICE_NAME, doc="Reported by /health")
    enable_mcp: bool = chz.field(
        default=True, doc="Serve the MCP tools over stdio alongside HTTP"
    )
    warmup: bool = chz.field(
        default=True, doc="Open the browser session at startup"
    )

    @classmethod
    def from_env(cls, **overrides) -> "ServerConfig":
        values: dict = {}
        if port := os.environ.get("MCP_HTTP_PORT"):
            values["port"] = int(port)
        values.update(overrides)
        return cls(**values)
