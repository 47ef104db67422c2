"""
Perplexity Page Structure Analyzer

Repairs selectors when Perplexity changes its markup. The script opens the
same persistent browser profile the server uses, asks one question, waits for
the answer with the server's completion poller, and then reports:

- which answer-container selectors match, with class, text length and preview
- the classes on the page that look answer-related
- the elements around any "Finished" marker (candidate completion indicators)
- a full-page screenshot

Dependencies:
    - playwright: browser automation (run `playwright install chromium` once)
    - perplexity_web: session, submission and polling code shared with the server

Usage:
    python scripts/analyze_page.py
    python scripts/analyze_page.py --query "What is machine learning?" --keep-open 120

Do not run this while the server is up: both use the same profile directory,
and Chromium allows only one process per profile.
"""

import argparse
import asyncio
import json

from perplexity_web.automation.poller import poll_for_completion
from perplexity_web.automation.selectors import ANSWER_CONTAINER, COMPLETION_INDICATOR
from perplexity_web.automation.session import SessionManager
from perplexity_web.automation.submission import locate_input, submit_query
from perplexity_web.config import AutomationConfig
from perplexity_web.logging_config import configure_logging

# Runs in the page; takes the answer selectors and returns a JSON-able report.
ANALYZE_SCRIPT = """
(answerSelectors) => {
  const report = { bodyClasses: document.body.className, answerContainers: [],
                   relevantClasses: [], finishedNearby: [], mainPreview: '' };

  const classes = new Set();
  document.querySelectorAll('[class]').forEach(el => {
    String(el.className).split(/\\s+/).forEach(c => c && classes.add(c));
  });
  const markers = ['answer', 'response', 'result', 'content', 'markdown', 'prose',
                   'gap', 'finished', 'complete'];
  report.relevantClasses = Array.from(classes).filter(c => markers.some(m => c.includes(m)));

  answerSelectors.forEach(selector => {
    document.querySelectorAll(selector).forEach((el, index) => {
      const text = el.textContent || '';
      if (text.length > 100) {
        report.answerContainers.push({ selector, index, tag: el.tagName,
          class: String(el.className), textLength: text.length,
          preview: text.substring(0, 200) });
      }
    });
  });

  const describe = el => el ? { tag: el.tagName, class: String(el.className), id: el.id } : null;
  Array.from(document.querySelectorAll('*'))
    .filter(el => (el.textContent || '').includes('Finished') && el.textContent.length < 100)
    .forEach(el => {
      const parent = el.parentElement;
      const grandParent = parent ? parent.parentElement : null;
      report.finishedNearby.push({ tag: el.tagName, text: el.textContent.trim(),
        parent: describe(parent), grandParent: describe(grandParent),
        grandParentHtml: grandParent ? grandParent.innerHTML.substring(0, 300) : '' });
    });

  const main = document.querySelector('main');
  report.mainPreview = main ? main.innerHTML.substring(0, 3000) : '';
  return report;
}
"""


def print_section(title: str):
    print(f"\n--- {title} ---")


def print_report(report: dict, max_containers: int = 10):
    print("\n========================================")
    print("PAGE STRUCTURE")
    print("========================================")
    print("Body classes:", report["bodyClasses"])

    print_section("Answer-related classes")
    print("\n".join(report["relevantClasses"]) or "(none)")

    print_section("Answer containers")
    for i, el in enumerate(report["answerContainers"][:max_containers]):
        print(f"\n[{i}] {el['selector']} [{el['index']}] <{el['tag'].lower()}>")
        print("  class:", el["class"])
        print("  text length:", el["textLength"])
        print("  preview:", el["preview"])

    print_section('Elements near "Finished"')
    for i, el in enumerate(report["finishedNearby"]):
        print(f"\n[{i}] {el['tag']}: {el['text']!r}")
        print("  parent:", json.dumps(el["parent"]))
        print("  grandparent:", json.dumps(el["grandParent"]))
        print("  grandparent html:", el["grandParentHtml"])


async def analyze(config: AutomationConfig, query: str, screenshot: str, keep_open: int):
    sessions = SessionManager(config)
    session = await sessions.initialize()
    page = session.page
    try:
        print(f"Logged in: {session.is_logged_in}")
        search_input = await locate_input(page, config)
        print(f"Search input: {search_input.strategy.selector}")
        await submit_query(page, search_input, query, config)

        print("Waiting for the answer to complete...")
        poll = await poll_for_completion(
            page,
            COMPLETION_INDICATOR,
            interval_ms=config.poll_interval_ms,
            max_attempts=config.poll_max_attempts,
            check_timeout_ms=config.poll_check_timeout_ms,
            sleep=page.wait_for_timeout,
        )
        print(f"Poll: {poll.outcome.value} after {poll.attempts} checks")
        await page.wait_for_timeout(config.post_completion_settle_ms)

        report = await page.evaluate(
            ANALYZE_SCRIPT, [strategy.selector for strategy in ANSWER_CONTAINER]
        )
        print_report(report)

        await page.screenshot(path=screenshot, full_page=True)
        print(f"\nScreenshot saved: {screenshot}")

        if keep_open:
            print(f"\nBrowser stays open for {keep_open}s; open DevTools (F12) to explore the DOM.")
            await page.wait_for_timeout(keep_open * 1000)
    finally:
        await sessions.close()


def main():
    parser = argparse.ArgumentParser(
        prog="analyze_page.py", description="Dump Perplexity answer-page structure"
    )
    parser.add_argument("--query", default="What is machine learning?", help="Question to ask")
    parser.add_argument(
        "--screenshot", default="debug-page-analysis.png", help="Where to save the screenshot"
    )
    parser.add_argument(
        "--keep-open",
        metavar="SECONDS",
        type=int,
        default=60,
        help="Keep the browser open for manual inspection (0 to close at once)",
    )
    parser.add_argument("--headless", action="store_true", help="Run Chromium headless")
    args = parser.parse_args()

    configure_logging("INFO")
    overrides = {"headless": True} if args.headless else {}
    asyncio.run(
        analyze(AutomationConfig.from_env(**overrides), args.query, args.screenshot, args.keep_open)
    )


if __name__ == "__main__":
    main()
