import re
from typing import List, NamedTuple, Optional

from tabscribe.types.tab import Tab, TabContent, TabRef

TAB_REF_PATTERN = re.compile(r"ID:([^:\s]+):([^:\s]+)\Z")

URI_TEMPLATE = "tab://{windowId}/{tabId}"
CURRENT_TAB_URI = "tab://current"
TAB_URI_PATTERN = re.compile(r"tab://([^/]+)/([^/]+)\Z")

LIST_URL_MAX_CHARS = 120


class Page(NamedTuple):
    text: str
    start_index: int
    # None when ``text`` reaches the end of the content
    next_start_index: Optional[int]

    @property
    def truncated(self) -> bool:
        return self.next_start_index is not None


def format_tab_ref(tab: TabRef) -> str:
    return f"ID:{tab.window_id}:{tab.tab_id}"


def parse_tab_ref(tab_ref: str) -> Optional[TabRef]:
    """Parse ``ID:<window>:<tab>`` at the end of ``tab_ref``; None if absent."""
    match = TAB_REF_PATTERN.search(tab_ref)
    if not match:
        return None
    return TabRef(window_id=match.group(1), tab_id=match.group(2))


def format_uri(ref: TabRef) -> str:
    return f"tab://{ref.window_id}/{ref.tab_id}"


def parse_uri(uri: str) -> Optional[TabRef]:
    """Resolve a tab resource URI. ``tab://current`` yields None (the active tab).

    Raises ValueError for anything that is not a tab URI.
    """
    if uri == CURRENT_TAB_URI:
        return None
    match = TAB_URI_PATTERN.match(uri)
    if not match:
        raise ValueError(f"not a tab resource uri: {uri}")
    return TabRef(window_id=match.group(1), tab_id=match.group(2))


def truncate_url(url: str, over: int = LIST_URL_MAX_CHARS) -> str:
    if len(url) <= over:
        return url
    return url[:over] + "..."


def format_list_item(tab: Tab) -> str:
    return f"- {format_tab_ref(tab)} [{tab.title}]({truncate_url(tab.url)})"


def format_list(tabs: List[Tab]) -> str:
    header = f"### Current Tabs ({len(tabs)} tabs exists)\n"
    return header + "\n".join(format_list_item(tab) for tab in tabs)


def paginate(content: str, start_index: int = 0, max_chars: Optional[int] = None) -> Page:
    """Slice one page out of ``content``.

    Following ``next_start_index`` from 0 until it is None visits every
    character exactly once.
    """
    if start_index < 0:
        raise ValueError(f"start_index must be >= 0, got {start_index}")
    if max_chars is not None and max_chars < 1:
        raise ValueError(f"max_chars must be >= 1, got {max_chars}")

    remaining = content[start_index:]
    if max_chars is None or len(remaining) <= max_chars:
        return Page(text=remaining, start_index=start_index, next_start_index=None)
    return Page(
        text=remaining[:max_chars],
        start_index=start_index,
        next_start_index=start_index + max_chars,
    )


def truncation_notice(next_start_index: int) -> str:
    return (
        f"<ERROR>Content truncated. Read with startIndex of {next_start_index} "
        "to get more content.</ERROR>"
    )


def format_tab_content(
    tab: TabContent, start_index: int = 0, max_content_chars: Optional[int] = None
) -> str:
    """Render content as front matter plus one page of body.

    ``startIndex`` appears only for a non-zero start, ``truncated`` only when
    more content remains.
    """
    page = paginate(tab.content, start_index, max_content_chars)

    front_matter = ["---", f"url: {tab.url}", f"title: {tab.title}"]
    if page.start_index > 0:
        front_matter.append(f"startIndex: {page.start_index}")
    if page.truncated:
        front_matter.append("truncated: true")
    front_matter.append("---")

    text = "\n".join(front_matter) + "\n" + page.text
    if page.next_start_index is not None:
        text += "\n\n" + truncation_notice(page.next_start_index)
    return text
