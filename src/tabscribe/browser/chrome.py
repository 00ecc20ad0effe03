"""Chrome adapter.

Chrome exposes stable numeric ids for windows and tabs, so TabRefs stay valid
until the tab closes. ``open_url`` always creates a new tab at the end of the
front window and returns its ref.
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
from tabscribe.types.tab import Tab, TabContent, TabRef


def tab_list_script(application_name: str, sep: str) -> str:
    return f"""
tell application "{escape_applescript(application_name)}"
  set output to ""
  repeat with aWindow in (every window)
    set windowId to id of aWindow
    repeat with aTab in (every tab of aWindow)
      set tabId to id of aTab
      set tabTitle to title of aTab
      set tabURL to URL of aTab
      set output to output & windowId & "{sep}" & tabId & "{sep}" & tabTitle & "{sep}" & tabURL & linefeed
    end repeat
  end repeat
  return output
end tell
"""


def read_tab_block(sep: str) -> str:
    """Statements run inside ``tell <tab>`` that return ``title SEP url SEP html``."""
    return f"""
      with timeout of {PAGE_READ_TIMEOUT} seconds
        set tabTitle to title
        set tabURL to URL
        set tabContent to execute javascript "document.documentElement.outerHTML"
      end timeout
      return tabTitle & "{sep}" & tabURL & "{sep}" & tabContent
"""


def page_content_script(application_name: str, sep: str, tab: Optional[TabRef] = None) -> str:
    app = escape_applescript(application_name)
    if tab is not None:
        body = f"""
  tell application "{app}"
    tell window id "{escape_applescript(tab.window_id)}"
      tell tab id "{escape_applescript(tab.tab_id)}"
{read_tab_block(sep)}
      end tell
    end tell
  end tell
"""
    else:
        body = f"""
  tell application "{app}"
    repeat with w in windows
      set t to active tab of w
      if URL of t is not "about:blank" then
        tell t
{read_tab_block(sep)}
        end tell
      end if
    end repeat
    error "No active tab found" number -1728
  end tell
"""
    return guarded(body, sep)


def new_tab_script(application_name: str, escaped_url: str, sep: str) -> str:
    return guarded(
        f"""
  tell application "{escape_applescript(application_name)}"
    if (count of windows) is 0 then make new window
    set newTab to (make new tab at end of tabs of window 1 with properties {{URL:"{escaped_url}"}})
    return ((id of window 1) as text) & "{sep}" & ((id of newTab) as text)
  end tell
""",
        sep,
    )


class ChromeAdapter(BrowserAdapter):
    name = "chrome"

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
