"""
Selector Strategy Tables

The Perplexity DOM is not a contract: class names and test ids change without
notice. Every element the automation needs is therefore looked up through an
ordered table of (selector, label) strategies instead of a single selector.

Resolution Rules:
-----------------
- Strategies are tried strictly in order.
- A strategy matches when the first element it selects becomes visible within
  the per-entry timeout.
- The first match wins. Later entries are fallbacks, never merged with
  earlier ones.
- A Playwright error on one entry (timeout, detached node, bad selector) means
  "not this entry" and resolution moves on.

Keeping the strategies as data means a new fallback is a one-line table edit,
with no change to the code that walks the table.
"""

import dataclasses
import logging
from typing import Any, Sequence

from playwright.async_api import Error as PlaywrightError

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class SelectorStrategy:
    selector: str
    label: str


@dataclasses.dataclass(frozen=True)
class SelectorMatch:
    strategy: SelectorStrategy
    locator: Any
    index: int


SEARCH_INPUT: tuple[SelectorStrategy, ...] = (
    SelectorStrategy('textarea[placeholder*="Ask"]', "ask textarea"),
    SelectorStrategy('textarea[placeholder*="question"]', "question textarea"),
    SelectorStrategy("#ask-input", "ask input id"),
    SelectorStrategy('div[contenteditable="true"]', "contenteditable div"),
    SelectorStrategy('div[role="textbox"]', "textbox role"),
    SelectorStrategy("textarea", "any textarea"),
)

SUBMIT_BUTTON: tuple[SelectorStrategy, ...] = (
    SelectorStrategy('button[aria-label="Submit"]', "submit aria-label"),
    SelectorStrategy('button[aria-label*="Submit"]', "submit aria-label prefix"),
    SelectorStrategy('button[data-testid="submit-button"]', "submit test id"),
    SelectorStrategy('button[type="submit"]', "submit type"),
)

COMPLETION_INDICATOR: tuple[SelectorStrategy, ...] = (
    SelectorStrategy('button[aria-label="Copy"]', "copy button"),
    SelectorStrategy('button[aria-label="Rewrite"]', "rewrite button"),
    SelectorStrategy(
        'div.flex.items-center.justify-between:has(button[aria-label="Copy"])',
        "answer toolbar",
    ),
)

ANSWER_CONTAINER: tuple[SelectorStrategy, ...] = (
    SelectorStrategy('[data-testid="answer"]', "answer test id"),
    SelectorStrategy('[class*="markdown"]', "markdown container"),
    SelectorStrategy(".prose", "prose"),
    SelectorStrategy('[class*="answer"]', "answer class"),
    SelectorStrategy('[class*="response"]', "response class"),
    SelectorStrategy("article", "article"),
)

COOKIE_CONSENT: tuple[SelectorStrategy, ...] = (
    SelectorStrategy('button:has-text("Accept All Cookies")', "accept all cookies"),
    SelectorStrategy('button:has-text("Accept All")', "accept all"),
    SelectorStrategy('button:has-text("Accept")', "accept"),
    SelectorStrategy('button:has-text("Got it")', "got it"),
)

SIGN_IN: tuple[SelectorStrategy, ...] = (
    SelectorStrategy('button:has-text("Sign In")', "sign in"),
    SelectorStrategy('button:has-text("Log in")', "log in"),
)

MODE_SELECTOR: tuple[SelectorStrategy, ...] = (
    SelectorStrategy('[data-testid="mode-selector"]', "mode selector test id"),
    SelectorStrategy('button[aria-label*="Search mode"]', "search mode button"),
    SelectorStrategy('button:has-text("Focus")', "focus button"),
)

# Visible labels of the in-page mode options. "concise" is the page default.
MODE_OPTION_LABELS: dict[str, tuple[str, ...]] = {
    "copilot": ("Copilot", "Pro"),
    "deep": ("Deep Research", "Research", "Deep"),
}


def mode_option_strategies(mode: str) -> tuple[SelectorStrategy, ...]:
    """Strategies for the menu entry of `mode` once the mode menu is open."""
    return tuple(
        SelectorStrategy(f'[role="menuitem"]:has-text("{label}")', f"{mode} menu item")
        for label in MODE_OPTION_LABELS.get(mode, ())
    ) + tuple(
        SelectorStrategy(f'button:has-text("{label}")', f"{mode} button")
        for label in MODE_OPTION_LABELS.get(mode, ())
    )


async def is_visible_within(locator: Any, timeout_ms: int) -> bool:
    """Whether `locator` becomes visible within `timeout_ms`. Playwright errors count as no."""
    try:
        await locator.wait_for(state="visible", timeout=timeout_ms)
    except PlaywrightError:
        return False
    return True


async def resolve_first_visible(
    page: Any,
    strategies: Sequence[SelectorStrategy],
    timeout_ms: int,
) -> SelectorMatch | None:
    """
    Walk `strategies` in order and return the first one whose element is visible.

    Args:
        page: Playwright page (or anything exposing ``locator(selector)``)
        strategies: Ordered selector table
        timeout_ms: Visibility timeout applied to each entry separately

    Returns:
        SelectorMatch for the first visible entry, or None when nothing matched
    """
    for index, strategy in enumerate(strategies):
        locator = page.locator(strategy.selector).first
        if await is_visible_within(locator, timeout_ms):
            logger.debug("selector %r matched (%s)", strategy.selector, strategy.label)
            return SelectorMatch(strategy=strategy, locator=locator, index=index)
    return None
