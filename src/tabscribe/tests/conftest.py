import re
from typing import Callable, Dict, List, Optional

import pytest

from tabscribe.browser import BrowserAdapter
from tabscribe.errors import TabNotFoundError
from tabscribe.types.tab import Tab, TabContent, TabRef

SEP_PATTERN = re.compile(r"<\|SEP:[a-z0-9]+\|>")

MOCK_TABS = [
    Tab(window_id="1001", tab_id="2001", title="Example Page", url="https://example.com/page1"),
    Tab(window_id="1001", tab_id="2002", title="GitHub", url="https://github.com/user/repo"),
    Tab(window_id="1002", tab_id="2003", title="Test Site", url="https://test.com/page"),
]


def page_html(heading: str) -> str:
    paragraphs = "".join(
        f"<p>{heading} paragraph {i} with enough words to count as real content.</p>"
        for i in range(4)
    )
    return f"<html><body><article><h1>{heading}</h1>{paragraphs}</article></body></html>"


class FakeAdapter(BrowserAdapter):
    """In-memory browser: tabs keyed by ref, the first tab is the active one."""

    name = "chrome"

    def __init__(self, tabs: Optional[List[Tab]] = None, pages: Optional[Dict[str, str]] = None):
        self.tabs = list(MOCK_TABS if tabs is None else tabs)
        self.pages = pages or {}
        self.opened: List[str] = []
        self.list_calls = 0

    async def get_tab_list(self, application_name: str) -> List[Tab]:
        self.list_calls += 1
        return list(self.tabs)

    async def get_page_content(
        self, application_name: str, tab: Optional[TabRef] = None
    ) -> TabContent:
        if tab is None:
            if not self.tabs:
                raise TabNotFoundError("No active tab found")
            match = self.tabs[0]
        else:
            match = next(
                (
                    t
                    for t in self.tabs
                    if t.window_id == tab.window_id and t.tab_id == tab.tab_id
                ),
                None,
            )
            if match is None:
                raise TabNotFoundError(f"Can't get tab id {tab.tab_id}")
        html = self.pages.get(match.tab_id, page_html(match.title))
        return TabContent(title=match.title, url=match.url, content=html)

    async def open_url(self, application_name: str, url: str) -> TabRef:
        self.opened.append(url)
        return TabRef(window_id="1001", tab_id=str(3000 + len(self.opened)))


class FakeOsascript:
    """Stands in for run_osascript: records scripts and answers via a responder.

    The responder receives the script and the separator found in it.
    """

    def __init__(self, responder: Callable[[str, str], str]):
        self.responder = responder
        self.scripts: List[str] = []

    async def __call__(self, script: str, timeout: float = 5.0) -> str:
        self.scripts.append(script)
        match = SEP_PATTERN.search(script)
        sep = match.group(0) if match else ""
        return self.responder(script, sep).strip()


@pytest.fixture
def fake_adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def fake_osascript(monkeypatch):
    """Install a FakeOsascript built from a responder function."""

    def install(responder: Callable[[str, str], str]) -> FakeOsascript:
        fake = FakeOsascript(responder)
        monkeypatch.setattr("tabscribe.browser.osascript.run_osascript", fake)
        return fake

    return install


@pytest.fixture
def make_adapter():
    return FakeAdapter


@pytest.fixture
def mock_tabs() -> List[Tab]:
    return list(MOCK_TABS)
