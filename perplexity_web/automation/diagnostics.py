"""
Diagnostics sinks for the automation.

Screenshots are taken at fixed checkpoints (session start, before a search,
periodically while polling, after the answer, on error). They exist only for
a human repairing selectors; the automation never reads them back. A sink
therefore never raises: a failed screenshot is logged and reported as None.
"""

import datetime
import re
from pathlib import Path
from typing import Any, Protocol

import structlog

logger = structlog.stdlib.get_logger(component=__name__)

_LABEL_RE = re.compile(r"[^A-Za-z0-9_-]+")


class DiagnosticsSink(Protocol):
    async def record(self, page: Any, label: str) -> str | None:
        """Capture the current page under `label`; return the artifact path, if any."""
        ...


class NullDiagnostics:
    async def record(self, page: Any, label: str) -> str | None:
        return None


class ScreenshotDiagnostics:
    """Writes full-page PNG screenshots named ``<timestamp>-<label>.png``."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    async def record(self, page: Any, label: str) -> str | None:
        if page is None:
            return None
        stamp = datetime.datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        safe_label = _LABEL_RE.sub("-", label).strip("-") or "snapshot"
        path = self.directory / f"{stamp}-{safe_label}.png"
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            await page.screenshot(path=str(path), full_page=True)
        except Exception as e:
            logger.warning("Failed to capture screenshot", label=label, error=str(e))
            return None
        logger.debug("Screenshot saved", path=str(path))
        return str(path)


def list_screenshots(directory: str | Path) -> list[str]:
    """Filenames of the PNG screenshots in `directory`, oldest first."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(p.name for p in directory.glob("*.png") if p.is_file())
