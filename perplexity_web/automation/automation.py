"""
Perplexity Automation Façade

Composes the session manager, submission flow, completion poller and
extractor into one operation:

    search(query, options) -> SearchResult

Per-call flow (stage names are logged, see SearchStage):

    IDLE -> SESSION_READY -> NAVIGATED -> INPUT_LOCATED -> SUBMITTED
         -> POLLING -> EXTRACTING -> DONE

Any exception at any stage moves the call to FAILED: a diagnostic screenshot
is taken and a failed SearchResult carrying the error message is returned.
Exceptions never escape search().

Concurrency:
------------
There is one browser page, so searches are serialized with an asyncio.Lock;
concurrent callers (MCP tools and HTTP requests alike) wait their turn.
close() does not wait for the lock: it is the escape hatch for
a wedged search, and closing the context makes that search fail fast.
"""

import asyncio

import structlog

from ..config import AutomationConfig
from .diagnostics import DiagnosticsSink, ScreenshotDiagnostics
from .errors import InputNotFoundError, SessionInitError
from .extractor import extract_answer, extract_sources
from .poller import poll_for_completion
from .selectors import COMPLETION_INDICATOR
from .session import SessionManager
from .submission import locate_input, select_mode, submit_query
from .types import (
    NO_ANSWER_PLACEHOLDER,
    SearchOptions,
    SearchResult,
    SearchStage,
)

logger = structlog.stdlib.get_logger(component=__name__)


class PerplexityAutomation:
    """
    Owns the browser session and runs searches against it one at a time.

    Args:
        config: Automation settings; defaults to AutomationConfig()
        session_manager: Session owner; built from `config` when omitted
        diagnostics: Screenshot sink; writes to config.screenshots_dir when
            omitted. Pass NullDiagnostics() to disable screenshots.
    """

    def __init__(
        self,
        config: AutomationConfig | None = None,
        session_manager: SessionManager | None = None,
        diagnostics: DiagnosticsSink | None = None,
    ):
        self.config = config or AutomationConfig()
        self.diagnostics = diagnostics or ScreenshotDiagnostics(self.config.screenshots_dir)
        self.sessions = session_manager or SessionManager(
            self.config, diagnostics=self.diagnostics
        )
        self._lock = asyncio.Lock()

    @property
    def is_logged_in(self) -> bool | None:
        session = self.sessions.session
        return session.is_logged_in if session else None

    async def initialize(self) -> None:
        async with self._lock:
            await self.sessions.initialize()

    async def close(self) -> None:
        await self.sessions.close()

    async def reinitialize(self) -> None:
        """Drop the current session (whatever state it is in) and open a new one."""
        # The first close unblocks a wedged search; the second drops any
        # session a queued caller opened while this one waited for the lock.
        await self.sessions.close()
        async with self._lock:
            await self.sessions.close()
            await self.sessions.initialize()

    async def search(self, query: str, options: SearchOptions | None = None) -> SearchResult:
        options = options or SearchOptions()
        async with self._lock:
            return await self._search(query, options)

    async def _search(self, query: str, options: SearchOptions) -> SearchResult:
        config = self.config
        log = logger.bind(mode=options.mode)
        stage = SearchStage.IDLE
        page = None

        try:
            try:
                session = await self.sessions.initialize()
            except Exception as e:
                raise SessionInitError(f"Failed to initialize browser session: {e}") from e
            page = session.page
            stage = SearchStage.SESSION_READY
            log.info("Searching", query=query, stage=stage.value)

            await page.goto(
                config.base_url,
                wait_until="domcontentloaded",
                timeout=config.navigation_timeout_ms,
            )
            await page.wait_for_timeout(config.renavigate_settle_ms)
            stage = SearchStage.NAVIGATED
            await self.diagnostics.record(page, "pre-search")

            await select_mode(page, options.mode, config)
            search_input = await locate_input(page, config)
            stage = SearchStage.INPUT_LOCATED

            await submit_query(page, search_input, query, config)
            stage = SearchStage.SUBMITTED
            log.debug("Query submitted", stage=stage.value)

            stage = SearchStage.POLLING
            poll = await poll_for_completion(
                page,
                COMPLETION_INDICATOR,
                interval_ms=config.poll_interval_ms,
                max_attempts=config.poll_max_attempts,
                check_timeout_ms=config.poll_check_timeout_ms,
                snapshot_every=config.poll_snapshot_every,
                on_snapshot=lambda attempt: self.diagnostics.record(page, f"polling-{attempt}"),
                sleep=page.wait_for_timeout,
            )
            if poll.completed:
                await page.wait_for_timeout(config.post_completion_settle_ms)

            stage = SearchStage.EXTRACTING
            answer = await extract_answer(page, config)
            sources = await extract_sources(page, config)
            debug = await self.diagnostics.record(page, "post-response")

            stage = SearchStage.DONE
            log.info(
                "Got response",
                stage=stage.value,
                poll=poll.outcome.value,
                chars=len(answer),
                sources=len(sources),
            )
            return SearchResult.ok(answer or NO_ANSWER_PLACEHOLDER, sources, debug=debug)

        except Exception as e:
            label = "input-not-found" if isinstance(e, InputNotFoundError) else "error"
            debug = await self.diagnostics.record(page, label)
            log.error(
                "Search failed",
                failed_at=stage.value,
                stage=SearchStage.FAILED.value,
                error=str(e),
            )
            return SearchResult.failure(str(e) or e.__class__.__name__, debug=debug)
