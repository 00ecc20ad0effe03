"""Safari adapter.

Safari has no stable tab ids. A tab is addressed by its window id plus its
1-based index in that window, and the index shifts as soon as an earlier tab
closes or moves. Refs are therefore only trustworthy right after listing; a
stale ref reads whatever tab now sits at that index, or fails with
TabNotFoundError when the index is gone. ``open_url`` creates a new tab in the
front window and returns its current index as a best-effort ref.
"""

from typing import List, Optional

from tabscribe.browser.browser import BrowserAdapter, parse_page_content, parse_tab_list
from tabscribe.browser.osascript import (
    CONTENT_TIMEOUT,
    PAGE_READ_TIMEOUT,
    escape_applescript,
    execute_applescript,
    execute_fields,
    execute_tab_creation_script,
    guarded,
    separator,
)
from tabscribe.errors import TabNotFoundError
from tabscribe.types.tab import Tab, TabContent, TabRef


def tab_list_script(application_name: str, sep: str) -> str:
    return f"""
tell application "{escape_applescript(application_name)}"
  set output to ""
  repeat with aWindow in (every window)
    set windowId to id of aWindow
    repeat with aTab in (every tab of aWindow)
      set tabIndex to index of aTab
      set tabTitle to name of aTab
      set tabURL to URL of aTab
      set output to output & windowId & "{sep}" & tabIndex & "{sep}" & tabTitle & "{sep}" & tabURL & linefeed
    end repeat
  end repeat
  return output
end tell
"""


def read_tab_block(sep: str) -> str:
    """Statements that read tab ``t`` and return ``title SEP url SEP html``."""
    return f"""
    with timeout of {PAGE_READ_TIMEOUT} seconds
      set tabTitle to name of t
      set tabURL to URL of t
      set tabContent to do JavaScript "document.documentElement.outerHTML" in t
    end timeout
    return tabTitle & "{sep}" & tabURL & "{sep}" & tabContent
"""


def page_content_script(application_name: str, sep: str, tab: Optional[TabRef] = None) -> str:
    app = escape_applescript(application_name)
    if tab is not None:
        if not tab.tab_id.isdigit():
            raise TabNotFoundError(f"Safari tabs are addressed by index, got {tab.tab_id!r}")
        body = f"""
  tell application "{app}"
    set t to tab {int(tab.tab_id)} of window id "{escape_applescript(tab.window_id)}"
{read_tab_block(sep)}
  end tell
"""
    else:
        body = f"""
  tell application "{app}"
    if (count of windows) is 0 then error "No active tab found" number -1728
    set t to current tab of front window
    set currentURL to URL of t
    if currentURL is missing value or currentURL is "about:blank" then error "No active tab found" number -1728
{read_tab_block(sep)}
  end tell
"""
    return guarded(body, sep)


def new_tab_script(application_name: str, escaped_url: str, sep: str) -> str:
    return guarded(
        f"""
  tell application "{escape_applescript(application_name)}"
    if (count of windows) is 0 then make new document
    set w to front window
    set newTab to (make new tab at end of tabs of w with properties {{URL:"{escaped_url}"}})
    return ((id of w) as text) & "{sep}" & ((index of newTab) as text)
  end tell
""",
        sep,
    )


class SafariAdapter(BrowserAdapter):
    name = "safari"

    async def get_tab_list(self, application_name: str) -> List[Tab]:
        sep = separator()
        output = await execute_applescript(tab_list_script(application_name, sep))
        tabs = parse_tab_list(output, sep)
        self._log_tabs(application_name, tabs)
        return tabs

    async def get_page_content(
        self, application_name: str, tab: Optional[TabRef] = None
    ) -> TabContent:
        sep = separator()
        fields = await execute_fields(
            page_content_script(application_name, sep, tab),
            sep,
            maxsplit=2,
            timeout=CONTENT_TIMEOUT,
        )
        return parse_page_content(fields)

    async def open_url(self, application_name: str, url: str) -> TabRef:
        return await execute_tab_creation_script(
            url, lambda escaped_url, sep: new_tab_script(application_name, escaped_url, sep)
        )
