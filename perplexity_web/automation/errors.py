class AutomationError(Exception):
    """
    Raised when driving the Perplexity page fails in a way the caller should see.

    The automation façade converts these (and any other exception) into a
    failed SearchResult; they never escape a search call.
    """
    pass


class SessionInitError(AutomationError):
    """
    The browser session could not be created.

    Typical causes:
    - Chromium failed to launch (profile locked by another process)
    - Navigation to the site timed out
    """
    pass


class InputNotFoundError(AutomationError):
    """No search input matched any known selector; the page layout may have changed."""
    pass
