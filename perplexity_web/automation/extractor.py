"""
Answer and Source Extraction

Reads the rendered answer page through a cascade of progressively weaker
strategies.

Answer Cascade:
---------------
1. Answer containers (see selectors.ANSWER_CONTAINER), in table order. The
   first element whose text is long enough and whose class does not look like
   page chrome (nav, header, footer, ...) is the answer.
2. The longest direct child of <main>, if it clears a lower length bar.
3. The page's visible text: long lines only, first N of them. This is a
   degraded result but better than nothing.

An empty string means every stage came up empty; the caller substitutes a
placeholder.

Sources:
--------
Outbound links (href starting with "http") are scanned in document order.
A link becomes a Source when its text is non-empty and short, its scheme is
http(s), and it does not point back at Perplexity itself. Duplicate urls keep
their first occurrence.
"""

from typing import Any, Iterable
from urllib.parse import urlparse

import structlog

from ..config import AutomationConfig
from .selectors import ANSWER_CONTAINER, SelectorStrategy
from .types import Source

logger = structlog.stdlib.get_logger(component=__name__)

CHROME_CLASS_MARKERS = ("nav", "header", "footer", "sidebar", "menu")


def looks_like_chrome(class_name: str | None) -> bool:
    """Whether an element's class attribute suggests navigation/header/footer chrome."""
    if not class_name:
        return False
    lowered = class_name.lower()
    return any(marker in lowered for marker in CHROME_CLASS_MARKERS)


async def _inner_text(element: Any) -> str:
    try:
        return (await element.inner_text()) or ""
    except Exception:
        return ""


async def _from_answer_containers(
    page: Any, strategies: Iterable[SelectorStrategy], min_chars: int
) -> str:
    for strategy in strategies:
        try:
            elements = await page.locator(strategy.selector).all()
        except Exception:
            continue
        for element in elements:
            text = (await _inner_text(element)).strip()
            if len(text) <= min_chars:
                continue
            try:
                class_name = await element.get_attribute("class")
            except Exception:
                class_name = None
            if looks_like_chrome(class_name):
                continue
            logger.info("Answer found", strategy=strategy.label, chars=len(text))
            return text
    return ""


async def _from_main_children(page: Any, min_chars: int) -> str:
    try:
        children = await page.locator("main > *").all()
    except Exception:
        return ""
    best = ""
    for child in children:
        text = (await _inner_text(child)).strip()
        if len(text) > len(best):
            best = text
    if len(best) > min_chars:
        logger.info("Answer taken from longest <main> child", chars=len(best))
        return best
    return ""


async def _from_page_text(page: Any, min_line_chars: int, max_lines: int) -> str:
    text = await _inner_text(page.locator("body"))
    lines = [line.strip() for line in text.split("\n")]
    kept = [line for line in lines if len(line) > min_line_chars][:max_lines]
    if kept:
        logger.warning("Answer taken from raw page text", lines=len(kept))
    return "\n".join(kept)


async def extract_answer(
    page: Any,
    config: AutomationConfig,
    strategies: Iterable[SelectorStrategy] = ANSWER_CONTAINER,
) -> str:
    answer = await _from_answer_containers(page, strategies, config.min_answer_chars)
    if not answer:
        answer = await _from_main_children(page, config.min_fallback_chars)
    if not answer:
        answer = await _from_page_text(page, config.min_line_chars, config.max_fallback_lines)
    return answer


def dedupe_sources(
    candidates: Iterable[tuple[str, str]],
    site_domain: str,
    limit: int = 10,
    max_title_scan_chars: int = 300,
    max_title_chars: int = 200,
) -> list[Source]:
    """
    Turn raw (title, href) pairs into Sources.

    Keeps encounter order; drops empty or overlong titles, non-http(s) urls,
    links to `site_domain`, and repeated urls; returns at most `limit` entries.
    """
    sources: list[Source] = []
    seen: set[str] = set()
    for title, url in candidates:
        title = (title or "").strip()
        url = (url or "").strip()
        if not title or len(title) >= max_title_scan_chars:
            continue
        if urlparse(url).scheme not in ("http", "https"):
            continue
        if site_domain and site_domain in url:
            continue
        if url in seen:
            continue
        seen.add(url)
        sources.append(Source(title=title[:max_title_chars], url=url))
        if len(sources) >= limit:
            break
    return sources


async def extract_sources(page: Any, config: AutomationConfig) -> list[Source]:
    try:
        links = await page.locator('a[href^="http"]').all()
    except Exception as e:
        logger.warning("Source extraction failed", error=str(e))
        return []

    candidates: list[tuple[str, str]] = []
    for link in links[: config.max_link_scan]:
        title = await _inner_text(link)
        try:
            href = await link.get_attribute("href")
        except Exception:
            href = None
        if href:
            candidates.append((title, href))

    return dedupe_sources(
        candidates,
        site_domain=config.site_domain,
        limit=config.max_sources,
        max_title_scan_chars=config.max_title_scan_chars,
        max_title_chars=config.max_title_chars,
    )
