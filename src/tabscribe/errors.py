class TabscribeError(Exception):
    """Base class for every failure raised by tabscribe."""


class ScriptExecutionError(TabscribeError):
    """osascript failed, timed out, overflowed its output cap, or the script reported an error."""


class TabNotFoundError(TabscribeError):
    """The requested tab (or the active tab) does not exist."""


class ContentReadError(TabscribeError):
    """The content script returned output that could not be decoded."""


class ExtractionError(TabscribeError):
    """Readable content could not be extracted from the page HTML."""


class WorkerTimeoutError(ExtractionError):
    """The extraction worker exceeded its timeout and was killed."""


class ExcludedHostError(TabscribeError):
    """The target tab belongs to a host excluded by configuration."""
