"""
Query submission: pick the search mode, type the query, submit it.

One clear + type + submit per call. Nothing here retries; a missing input box
is terminal for the call and reported as InputNotFoundError.
"""

from typing import Any

import structlog

from ..config import AutomationConfig
from .errors import InputNotFoundError
from .selectors import (
    MODE_SELECTOR,
    SEARCH_INPUT,
    SUBMIT_BUTTON,
    SelectorMatch,
    mode_option_strategies,
    resolve_first_visible,
)
from .types import SearchMode

logger = structlog.stdlib.get_logger(component=__name__)

INPUT_NOT_FOUND_MESSAGE = (
    "Search input not found on the Perplexity page; the page layout may have changed"
)


async def select_mode(page: Any, mode: SearchMode, config: AutomationConfig) -> bool:
    """
    Best-effort switch of the in-page search mode.

    "concise" is the page default and needs no interaction. For the other
    modes the mode menu is opened and the matching option clicked. A missing
    menu or option leaves the page in its default mode.

    Returns:
        True if an option was clicked
    """
    if mode == "concise":
        return False
    try:
        menu = await resolve_first_visible(page, MODE_SELECTOR, config.lookup_timeout_ms)
        if menu is None:
            logger.info("Mode selector not available, using default mode", mode=mode)
            return False
        await menu.locator.click()
        await page.wait_for_timeout(config.mode_menu_settle_ms)

        option = await resolve_first_visible(
            page, mode_option_strategies(mode), config.submit_timeout_ms
        )
        if option is None:
            logger.info("Mode option not available, using default mode", mode=mode)
            await page.keyboard.press("Escape")
            return False
        await option.locator.click()
        await page.wait_for_timeout(config.mode_menu_settle_ms)
    except Exception as e:
        logger.warning("Mode selection failed, using default mode", mode=mode, error=str(e))
        return False
    logger.info("Selected search mode", mode=mode)
    return True


async def locate_input(page: Any, config: AutomationConfig) -> SelectorMatch:
    match = await resolve_first_visible(page, SEARCH_INPUT, config.input_timeout_ms)
    if match is None:
        raise InputNotFoundError(INPUT_NOT_FOUND_MESSAGE)
    logger.info("Found search input", strategy=match.strategy.label)
    return match


async def submit_query(page: Any, search_input: SelectorMatch, query: str, config: AutomationConfig) -> None:
    """
    Clear the located input, type `query` with human-like pacing, and submit.

    Submission clicks the first visible submit control, or presses Enter when
    none is visible.
    """
    field = search_input.locator
    await field.click()
    await page.keyboard.press("ControlOrMeta+A")
    await page.keyboard.press("Backspace")
    await field.press_sequentially(query, delay=config.type_delay_ms)

    submit = await resolve_first_visible(page, SUBMIT_BUTTON, config.submit_timeout_ms)
    if submit is not None:
        await submit.locator.click()
        logger.info("Submitted query", via=submit.strategy.label, chars=len(query))
    else:
        await page.keyboard.press("Enter")
        logger.info("Submitted query", via="Enter", chars=len(query))
