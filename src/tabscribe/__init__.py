from tabscribe.browser import BrowserAdapter, get_adapter
from tabscribe.errors import (
    ContentReadError,
    ExcludedHostError,
    ExtractionError,
    ScriptExecutionError,
    TabNotFoundError,
    TabscribeError,
    WorkerTimeoutError,
)
from tabscribe.options import Options
from tabscribe.tabs import TabService, hash_tab_list
from tabscribe.types.tab import ExtractedContent, Tab, TabContent, TabRef
from tabscribe.view import format_tab_ref, parse_tab_ref
from tabscribe.watcher import TabListWatcher

__all__ = [
    "BrowserAdapter",
    "ContentReadError",
    "ExcludedHostError",
    "ExtractedContent",
    "ExtractionError",
    "Options",
    "ScriptExecutionError",
    "Tab",
    "TabContent",
    "TabListWatcher",
    "TabNotFoundError",
    "TabRef",
    "TabService",
    "TabscribeError",
    "WorkerTimeoutError",
    "format_tab_ref",
    "get_adapter",
    "hash_tab_list",
    "parse_tab_ref",
]
