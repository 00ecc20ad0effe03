import re
from abc import ABC, abstractmethod
from typing import ClassVar, List, Optional

from tabscribe.errors import ContentReadError
from tabscribe.options import BrowserName
from tabscribe.types.tab import Tab, TabContent, TabRef
from tabscribe.utils.logger import logger

HTTP_URL = re.compile(r"^https?://")


def parse_tab_list(output: str, sep: str) -> List[Tab]:
    """Parse ``window SEP tab SEP title SEP url`` lines into tabs.

    Lines whose URL is not http(s) (new tab pages, chrome://, file://) are
    dropped. The URL is always the last field, so a title that happens to
    contain the separator is joined back together.
    """
    tabs: List[Tab] = []
    # rows are joined with linefeed only; titles may hold other line breaks
    for line in output.split("\n"):
        parts = line.split(sep)
        if len(parts) < 4:
            continue
        window_id, tab_id = parts[0].strip(), parts[1].strip()
        url = parts[-1].strip()
        if not window_id or not tab_id or not HTTP_URL.match(url):
            continue
        title = sep.join(parts[2:-1]).strip()
        tabs.append(Tab(window_id=window_id, tab_id=tab_id, title=title, url=url))
    return tabs


def parse_page_content(fields: List[str]) -> TabContent:
    if len(fields) < 3:
        raise ContentReadError("Failed to read the tab content")
    title, url, content = (field.strip() for field in fields[:3])
    return TabContent(title=title, url=url, content=content)


class BrowserAdapter(ABC):
    """Tab operations for one browser, driven through AppleScript."""

    name: ClassVar[BrowserName]

    @abstractmethod
    async def get_tab_list(self, application_name: str) -> List[Tab]: ...

    @abstractmethod
    async def get_page_content(
        self, application_name: str, tab: Optional[TabRef] = None
    ) -> TabContent: ...

    @abstractmethod
    async def open_url(self, application_name: str, url: str) -> TabRef: ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    @staticmethod
    def _log_tabs(application_name: str, tabs: List[Tab]) -> None:
        logger.debug(f"{application_name}: found {len(tabs)} http(s) tabs")
