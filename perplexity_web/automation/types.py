"""
Result and option types for the Perplexity automation.

These pydantic models are the JSON shape returned by every surface: the MCP
tools serialize them as text, the HTTP relay returns them as the response
body, and the remote client reads them back.
"""

import enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, model_validator

SearchMode = Literal["concise", "copilot", "deep"]
SEARCH_MODES: tuple[str, ...] = ("concise", "copilot", "deep")

NO_ANSWER_PLACEHOLDER = "No answer received from Perplexity"


class SearchOptions(BaseModel):
    """Per-call options. Immutable."""
    model_config = ConfigDict(frozen=True)

    mode: SearchMode = "concise"


class Source(BaseModel):
    """A citation link scraped from the answer page."""
    title: str
    url: str


class SearchResult(BaseModel):
    """
    Outcome of a single search.

    Exactly one of the following holds:
    - success is True and answer is set
    - success is False and error is set

    Attributes:
        success: Whether an answer was extracted
        answer: The answer text (or a placeholder when the page was empty)
        sources: Citation links, unique by url, at most ten
        error: Failure message
        debug: Path of a diagnostic screenshot, when one was captured
    """
    success: bool
    answer: Optional[str] = None
    sources: list[Source] = []
    error: Optional[str] = None
    debug: Optional[str] = None

    @model_validator(mode="after")
    def _check_outcome(self) -> "SearchResult":
        if self.success:
            if self.answer is None or self.error is not None:
                raise ValueError("successful result needs an answer and no error")
        else:
            if self.error is None or self.answer is not None:
                raise ValueError("failed result needs an error and no answer")
        urls = [source.url for source in self.sources]
        if len(urls) != len(set(urls)):
            raise ValueError("source urls must be unique")
        return self

    @classmethod
    def ok(cls, answer: str, sources: list[Source], debug: str | None = None) -> "SearchResult":
        return cls(success=True, answer=answer, sources=sources, debug=debug)

    @classmethod
    def failure(cls, error: str, debug: str | None = None) -> "SearchResult":
        return cls(success=False, error=error, debug=debug)

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)


class SearchStage(str, enum.Enum):
    """Where a search call currently is. FAILED is reachable from any stage."""
    IDLE = "idle"
    SESSION_READY = "session_ready"
    NAVIGATED = "navigated"
    INPUT_LOCATED = "input_located"
    SUBMITTED = "submitted"
    POLLING = "polling"
    EXTRACTING = "extracting"
    DONE = "done"
    FAILED = "failed"
