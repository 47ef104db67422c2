import pytest

from fakes import FakeBrowser, perplexity_page
from perplexity_web.automation.selectors import COOKIE_CONSENT, SIGN_IN
from perplexity_web.automation.session import STEALTH_SCRIPT, SessionManager


async def test_initialize_launches_persistent_context(config, browser):
    sessions = SessionManager(config, playwright_factory=browser.factory)

    session = await sessions.initialize()

    assert sessions.is_active
    (user_data_dir, kwargs), = browser.launches
    assert user_data_dir == config.user_data_dir
    assert kwargs["headless"] is False
    assert kwargs["viewport"] == {"width": 1280, "height": 800}
    assert browser.contexts[0].init_scripts == [STEALTH_SCRIPT]
    assert session.page is browser.page
    assert browser.page.gotos == [config.base_url]
    assert config.settle_ms in browser.page.waits
    assert session.is_logged_in is True


async def test_initialize_is_idempotent(config, browser):
    sessions = SessionManager(config, playwright_factory=browser.factory)
    first = await sessions.initialize()
    second = await sessions.initialize()
    assert first is second
    assert len(browser.launches) == 1


async def test_cookie_banner_dismissed_and_logged_out_detected(config):
    page = perplexity_page()
    page.visible |= {COOKIE_CONSENT[1].selector, SIGN_IN[0].selector}
    browser = FakeBrowser(page)
    sessions = SessionManager(config, playwright_factory=browser.factory)

    session = await sessions.initialize()

    assert COOKIE_CONSENT[1].selector in page.clicks
    assert session.is_logged_in is False


async def test_failed_initialize_tears_down(config):
    browser = FakeBrowser(perplexity_page(goto_error=RuntimeError("net::ERR_NAME_NOT_RESOLVED")))
    sessions = SessionManager(config, playwright_factory=browser.factory)

    with pytest.raises(RuntimeError):
        await sessions.initialize()

    assert sessions.session is None
    assert browser.contexts[0].closed
    assert browser.playwrights[0].stopped


async def test_close_forgets_session_even_if_context_close_fails(config, browser):
    sessions = SessionManager(config, playwright_factory=browser.factory)
    await sessions.initialize()
    browser.contexts[0].close_error = RuntimeError("Target page, context or browser has been closed")

    await sessions.close()

    assert sessions.session is None
    assert not sessions.is_active
    assert browser.playwrights[0].stopped


async def test_close_without_session_is_noop(config, browser):
    sessions = SessionManager(config, playwright_factory=browser.factory)
    await sessions.close()
    assert browser.launches == []
