import hashlib
from typing import Dict, Iterable, List, Optional, Union

from tabscribe.browser import BrowserAdapter, get_adapter
from tabscribe.errors import ExcludedHostError
from tabscribe.extract.worker import extract_content
from tabscribe.filters import filter_tabs, is_excluded_host
from tabscribe.options import Options
from tabscribe.types.tab import HTTP_SCHEMES, ExtractedContent, Tab, TabContent, TabRef
from tabscribe.utils.logger import logger
from tabscribe.view import format_tab_content, format_uri, parse_tab_ref, parse_uri

MARKDOWN_MIME_TYPE = "text/markdown"


def hash_tab_list(tabs: Iterable[Tab]) -> str:
    """Order-independent digest of a tab list, used to detect changes between polls."""
    ordered = sorted(tabs, key=lambda tab: (tab.window_id, tab.tab_id))
    dump = "|".join(f"{tab.window_id}:{tab.tab_id}:{tab.title}:{tab.url}" for tab in ordered)
    return hashlib.sha256(dump.encode("utf-8")).hexdigest()


def resolve_tab_ref(ref: Union[TabRef, str, None]) -> Optional[TabRef]:
    if ref is None or isinstance(ref, TabRef):
        return ref
    parsed = parse_tab_ref(ref)
    if parsed is None:
        raise ValueError(f"invalid tab reference {ref!r}, expected ID:<windowId>:<tabId>")
    return parsed


class TabService:
    """Tab operations exposed to the protocol layer.

    Combines the browser adapter with host exclusion, content extraction and
    pagination. Holds no mutable state, so calls may run concurrently.
    """

    def __init__(self, options: Options, adapter: Optional[BrowserAdapter] = None):
        self.options = options
        self.adapter = adapter if adapter is not None else get_adapter(options.browser)

    async def list_tabs(self) -> List[Tab]:
        tabs = await self.adapter.get_tab_list(self.options.application_name)
        return filter_tabs(tabs, self.options.exclude_hosts)

    async def get_tab(self, ref: Union[TabRef, str, None] = None) -> TabContent:
        """Read raw page HTML, refusing excluded hosts even for explicit refs."""
        tab_ref = resolve_tab_ref(ref)
        content = await self.adapter.get_page_content(self.options.application_name, tab_ref)
        if is_excluded_host(content.url, self.options.exclude_hosts):
            raise ExcludedHostError("Content not available for excluded host")
        return content

    async def read_tab_content(self, ref: Union[TabRef, str, None] = None) -> ExtractedContent:
        page = await self.get_tab(ref)
        markdown = await extract_content(page.content, page.url, self.options.extraction_timeout)
        return ExtractedContent(title=page.title, url=page.url, content=markdown)

    async def read_tab(self, ref: Union[TabRef, str, None] = None, start_index: int = 0) -> str:
        """Read a tab (the active one when ``ref`` is None) as front matter + markdown page."""
        extracted = await self.read_tab_content(ref)
        return format_tab_content(extracted, start_index, self.options.max_content_chars)

    async def open_in_new_tab(self, url: str) -> TabRef:
        if not url.startswith(HTTP_SCHEMES):
            raise ValueError(f"only http(s) urls can be opened, got {url!r}")
        ref = await self.adapter.open_url(self.options.application_name, url)
        logger.info(f"Opened {url} in {self.options.application_name} ({format_uri(ref)})")
        return ref

    async def list_resources(self) -> List[Dict[str, str]]:
        return [
            {"uri": format_uri(tab), "name": tab.title, "mimeType": MARKDOWN_MIME_TYPE}
            for tab in await self.list_tabs()
        ]

    async def read_resource(self, uri: str, start_index: int = 0) -> Dict[str, str]:
        """Read ``tab://current`` or ``tab://{windowId}/{tabId}``."""
        extracted = await self.read_tab_content(parse_uri(uri))
        return {
            "uri": uri,
            "name": extracted.title,
            "mimeType": MARKDOWN_MIME_TYPE,
            "text": format_tab_content(extracted, start_index, self.options.max_content_chars),
        }
