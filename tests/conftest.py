import pytest

from fakes import FakeBrowser
from perplexity_web.automation import NullDiagnostics, PerplexityAutomation, SessionManager
from perplexity_web.config import AutomationConfig


@pytest.fixture
def config(tmp_path):
    """Automation settings with a throwaway profile and short, distinct waits."""
    return AutomationConfig(
        user_data_dir=str(tmp_path / "profile"),
        screenshots_dir=str(tmp_path / "screenshots"),
        poll_max_attempts=5,
        poll_interval_ms=11,
        settle_ms=13,
        renavigate_settle_ms=17,
        post_completion_settle_ms=19,
        mode_menu_settle_ms=23,
    )


@pytest.fixture
def browser():
    return FakeBrowser()


@pytest.fixture
def automation(config, browser):
    sessions = SessionManager(config, playwright_factory=browser.factory)
    return PerplexityAutomation(config, session_manager=sessions, diagnostics=NullDiagnostics())
