"""
Perplexity Web Automation

Drives the Perplexity web UI through Playwright and turns the rendered answer
page into a structured SearchResult.

Architecture:
-------------
1. selectors.py: ordered selector tables and the first-visible resolver
2. session.py: persistent Chromium context/page lifecycle
3. submission.py: mode selection, typing, submitting
4. poller.py: bounded wait for the completion indicator
5. extractor.py: answer text and citation links
6. diagnostics.py: screenshot sink
7. automation.py: PerplexityAutomation, the façade composing all of the above

Expect breakage: the selectors describe markup Perplexity does not promise to
keep. scripts/analyze_page.py helps find replacements.
"""

from .automation import PerplexityAutomation
from .diagnostics import NullDiagnostics, ScreenshotDiagnostics
from .errors import AutomationError, InputNotFoundError, SessionInitError
from .session import SessionManager
from .types import SEARCH_MODES, SearchMode, SearchOptions, SearchResult, Source

__all__ = [
    "PerplexityAutomation",
    "SessionManager",
    "ScreenshotDiagnostics",
    "NullDiagnostics",
    "AutomationError",
    "InputNotFoundError",
    "SessionInitError",
    "SEARCH_MODES",
    "SearchMode",
    "SearchOptions",
    "SearchResult",
    "Source",
]
