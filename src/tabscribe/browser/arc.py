"""Arc adapter.

Arc speaks Chrome's scripting dictionary with UUID window/tab ids, with two
quirks:

- ``execute javascript`` may hand back the page as a JSON string literal
  (quoted, with ``\\u003C``-style escapes), which is decoded when possible.
- telling the active tab directly is unreliable, so a read without a ref first
  resolves the active tab's ids and then takes the by-id path.
"""

import json
from typing import Optional

from tabscribe.browser.browser import parse_page_content
from tabscribe.browser.chrome import ChromeAdapter, page_content_script
from tabscribe.browser.osascript import (
    CONTENT_TIMEOUT,
    escape_applescript,
    execute_fields,
    guarded,
    separator,
)
from tabscribe.errors import ContentReadError
from tabscribe.types.tab import TabContent, TabRef


def active_tab_script(application_name: str, sep: str) -> str:
    return guarded(
        f"""
  tell application "{escape_applescript(application_name)}"
    set wId to id of front window
    set tId to id of active tab of front window
    return (wId as text) & "{sep}" & (tId as text)
  end tell
""",
        sep,
    )


def decode_js_string(value: str) -> str:
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            return value
        if isinstance(decoded, str):
            return decoded
    return value


class ArcAdapter(ChromeAdapter):
    name = "arc"

    async def get_active_tab_ref(self, application_name: str) -> TabRef:
        sep = separator()
        fields = await execute_fields(active_tab_script(application_name, sep), sep)
        if len(fields) < 2 or not fields[0].strip() or not fields[1].strip():
            raise ContentReadError("Failed to resolve the active Arc tab")
        return TabRef(window_id=fields[0].strip(), tab_id=fields[1].strip())

    async def get_page_content(
        self, application_name: str, tab: Optional[TabRef] = None
    ) -> TabContent:
        target = tab if tab is not None else await self.get_active_tab_ref(application_name)
        sep = separator()
        fields = await execute_fields(
            page_content_script(application_name, sep, target),
            sep,
            maxsplit=2,
            timeout=CONTENT_TIMEOUT,
        )
        page = parse_page_content(fields)
        return page.model_copy(update={"content": decode_js_string(page.content)})
