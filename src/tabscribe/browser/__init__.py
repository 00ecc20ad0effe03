from tabscribe.browser.arc import ArcAdapter
from tabscribe.browser.browser import BrowserAdapter
from tabscribe.browser.chrome import ChromeAdapter
from tabscribe.browser.safari import SafariAdapter
from tabscribe.options import BrowserName

ADAPTERS = {
    "chrome": ChromeAdapter,
    "safari": SafariAdapter,
    "arc": ArcAdapter,
}


def get_adapter(browser: BrowserName) -> BrowserAdapter:
    """Build the adapter for ``browser``; chosen once at startup."""
    try:
        return ADAPTERS[browser]()
    except KeyError:
        raise ValueError(f"unsupported browser: {browser!r}") from None


__all__ = [
    "ADAPTERS",
    "ArcAdapter",
    "BrowserAdapter",
    "ChromeAdapter",
    "SafariAdapter",
    "get_adapter",
]
