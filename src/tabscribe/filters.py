from typing import Iterable, List
from urllib.parse import urlparse

from tabscribe.types.tab import Tab


def is_excluded_host(url: str, exclude_hosts: Iterable[str]) -> bool:
    """True if the URL's host is an excluded host or one of its subdomains."""
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return False
    if not hostname:
        return False
    return any(hostname == d or hostname.endswith("." + d) for d in exclude_hosts)


def filter_tabs(tabs: Iterable[Tab], exclude_hosts: Iterable[str]) -> List[Tab]:
    hosts = tuple(exclude_hosts)
    if not hosts:
        return list(tabs)
    return [tab for tab in tabs if not is_excluded_host(tab.url, hosts)]
