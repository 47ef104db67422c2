"""
Browser Session Management

Owns the single Playwright persistent context and page used for every search.

Lifecycle:
----------
- initialize(): idempotent. Launches a persistent, profile-backed Chromium
  context so login cookies survive process restarts, installs the
  anti-automation-detection script before any navigation, opens the site,
  dismisses a cookie banner if one shows up, and records whether the profile
  looks logged in.
- close(): tears everything down and forgets the session. Safe to call when
  nothing is open, and the session is forgotten even if the old context is
  already broken. An initialize() still in flight when close() runs tears
  down what it opened and raises SessionInitError instead of publishing a
  session built on a closed driver.

The manager never recreates a session on its own; callers decide when to
initialize again.
"""

import dataclasses
from pathlib import Path
from typing import Any, Callable

import structlog
from playwright.async_api import async_playwright

from ..config import AutomationConfig
from .diagnostics import DiagnosticsSink, NullDiagnostics
from .errors import SessionInitError
from .selectors import COOKIE_CONSENT, SIGN_IN, resolve_first_visible

logger = structlog.stdlib.get_logger(component=__name__)

BROWSER_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-infobars",
    "--no-first-run",
    "--no-default-browser-check",
]

# Runs in every document before page scripts: hide the webdriver flag and
# fill in the plugin/language fields that headless automation leaves empty.
STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
if (!window.chrome) { window.chrome = { runtime: {} }; }
"""


@dataclasses.dataclass
class Session:
    context: Any
    page: Any
    is_logged_in: bool


class SessionManager:
    """
    Creates and destroys the browser session.

    Args:
        config: Automation settings (profile dir, viewport, timeouts)
        playwright_factory: Callable returning an object with an async
            ``start()`` that yields a Playwright instance. Defaults to
            ``playwright.async_api.async_playwright``.
        diagnostics: Sink for the "initialize" screenshot
    """

    def __init__(
        self,
        config: AutomationConfig,
        playwright_factory: Callable[[], Any] = async_playwright,
        diagnostics: DiagnosticsSink | None = None,
    ):
        self.config = config
        self.playwright_factory = playwright_factory
        self.diagnostics = diagnostics or NullDiagnostics()
        self._playwright: Any | None = None
        self._session: Session | None = None
        # Bumped by close(); an initialize() that started under an older
        # generation must not publish its session.
        self._generation = 0

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def is_active(self) -> bool:
        return self._session is not None

    def _ensure_current(self, generation: int) -> None:
        if generation != self._generation:
            raise SessionInitError("Session was closed while it was being initialized")

    async def initialize(self) -> Session:
        if self._session is not None:
            return self._session

        config = self.config
        generation = self._generation
        logger.info("Initializing browser session", user_data_dir=config.user_data_dir)

        playwright = None
        context = None
        try:
            playwright = await self.playwright_factory().start()
            self._ensure_current(generation)
            Path(config.user_data_dir).mkdir(parents=True, exist_ok=True)
            context = await playwright.chromium.launch_persistent_context(
                config.user_data_dir,
                headless=config.headless,
                viewport={"width": config.viewport_width, "height": config.viewport_height},
                locale=config.locale,
                args=BROWSER_ARGS,
            )
            self._ensure_current(generation)
            await context.add_init_script(STEALTH_SCRIPT)
            page = context.pages[0] if context.pages else await context.new_page()

            await page.goto(
                config.base_url,
                wait_until="domcontentloaded",
                timeout=config.navigation_timeout_ms,
            )
            await page.wait_for_timeout(config.settle_ms)
            self._ensure_current(generation)

            await self._dismiss_cookie_consent(page)
            is_logged_in = await self._detect_login(page)
            self._ensure_current(generation)
        except BaseException:
            await self._teardown(playwright, context)
            raise

        self._playwright = playwright
        self._session = Session(context=context, page=page, is_logged_in=is_logged_in)
        await self.diagnostics.record(page, "initialize")
        logger.info("Session initialized", logged_in=is_logged_in)
        return self._session

    async def close(self) -> None:
        self._generation += 1
        session, self._session = self._session, None
        playwright, self._playwright = self._playwright, None
        await self._teardown(playwright, session.context if session else None)
        if session is not None:
            logger.info("Session closed")

    async def _teardown(self, playwright: Any | None, context: Any | None) -> None:
        try:
            if context is not None:
                await context.close()
        except Exception as e:
            logger.warning("Error closing browser context", error=str(e))
        try:
            if playwright is not None:
                await playwright.stop()
        except Exception as e:
            logger.warning("Error stopping Playwright", error=str(e))

    async def _dismiss_cookie_consent(self, page: Any) -> None:
        try:
            match = await resolve_first_visible(
                page, COOKIE_CONSENT, self.config.lookup_timeout_ms
            )
            if match is not None:
                await match.locator.click()
                logger.info("Dismissed cookie consent", button=match.strategy.label)
        except Exception as e:
            logger.debug("Cookie consent not dismissed", error=str(e))

    async def _detect_login(self, page: Any) -> bool:
        # Fail open: any error while probing counts as logged in.
        try:
            match = await resolve_first_visible(page, SIGN_IN, self.config.lookup_timeout_ms)
        except Exception as e:
            logger.debug("Sign-in check failed, assuming logged in", error=str(e))
            return True
        return match is None
