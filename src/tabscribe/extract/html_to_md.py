import re
from typing import List, Optional, Union

from bs4 import BeautifulSoup, Tag
from bs4.element import Comment
from markdownify import markdownify as md

from tabscribe.utils.logger import logger

# Main content container selectors, most specific first
MAIN_CONTENT_SELECTORS = [
    "article",
    "main",
    "[role=main]",
    ".post-content",
    ".entry-content",
    ".article-body",
    ".post",
    ".content",
    "#content",
    ".main",
    "#main",
    ".container",
    ".page",
]

# Elements removed before any scoring
ELEMENTS_TO_REMOVE = ["script", "style", "noscript", "svg", "iframe", "canvas", "template"]

# Elements dropped by markdownify (their text is kept)
STRIP_TAGS = [
    "meta",
    "link",
    "head",
    "path",
    "footer",
    "nav",
    "header",
    "button",
    "input",
    "select",
    "form",
]

# Lines that look like leaked JS/CSS rather than prose
CONTENT_START_PATTERNS = (
    r"\b(?:function|document|window|var|const|let)\b|\{|\}|==|=>|\(self|\[0\]"
)

# Below this many characters a conversion is treated as "too thin" and the next
# fallback is tried
MIN_CONTENT_CHARS = 100


def clean_html(html: str) -> BeautifulSoup:
    """Parse HTML and drop scripts, comments and other non-content nodes."""
    soup = BeautifulSoup(html, "html5lib")

    for tag_name in ELEMENTS_TO_REMOVE:
        for element in soup(tag_name):
            element.decompose()

    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    for element in soup.find_all(attrs={"aria-hidden": "true"}):
        element.decompose()

    return soup


def score_container(container: Tag) -> int:
    """Favor containers with more text, paragraphs and headings."""
    element_count = len(container.find_all())
    text_length = len(container.get_text(strip=True))
    p_count = len(container.find_all("p"))
    h_count = len(container.find_all(["h1", "h2", "h3", "h4", "h5", "h6"]))

    if text_length < 50 or element_count < 3:
        return 0
    return text_length + (element_count * 5) + (p_count * 10) + (h_count * 20)


def select_main_content(soup: BeautifulSoup, debug: bool = False) -> Union[Tag, BeautifulSoup]:
    """Pick the element most likely to hold the page's main content."""
    best_container: Optional[Tag] = None
    best_score = 0

    for selector in MAIN_CONTENT_SELECTORS:
        found = soup.select(selector)
        if not found:
            continue
        score = score_container(found[0])
        if debug:
            logger.debug(f"Content container {selector}: score={score}")
        if score > best_score:
            best_score = score
            best_container = found[0]

    if best_container is not None:
        return best_container

    # Fallback: the div holding the most paragraph text
    div_scores = []
    for div in soup.find_all("div"):
        p_tags = div.find_all("p")
        if len(p_tags) > 2:
            p_text = sum(len(p.get_text(strip=True)) for p in p_tags)
            if p_text > 200:
                div_scores.append((div, p_text))
    if div_scores:
        div_scores.sort(key=lambda item: item[1], reverse=True)
        return div_scores[0][0]

    return soup.body if soup.body else soup


def to_markdown(html: str) -> str:
    return md(html, strip=STRIP_TAGS, heading_style="ATX")


def post_process_markdown(markdown: str) -> str:
    """Trim leading blank lines and leaked JS/CSS, collapse runs of blank lines."""
    lines = markdown.split("\n")

    while lines and not lines[0].strip():
        lines.pop(0)

    if lines and re.search(CONTENT_START_PATTERNS, lines[0]):
        start_idx = 0
        for i, line in enumerate(lines):
            stripped = line.strip()
            if stripped and (
                stripped.startswith("#")
                or re.match(r"^[A-Z]", stripped)
                or stripped.startswith(("*", "-", ">"))
            ):
                start_idx = i
                break
        lines = lines[start_idx:]

    processed = "\n".join(line.rstrip() for line in lines)
    return re.sub(r"\n{3,}", "\n\n", processed).strip()


def direct_tag_extraction(soup: BeautifulSoup) -> str:
    """Collect substantial headings, paragraphs, lists and tables as a last resort."""
    important_content: List[str] = []
    for tag in soup.find_all(["h1", "h2", "h3", "p", "ul", "ol", "table"]):
        text = tag.get_text(strip=True)
        if text and len(text) > 15:
            important_content.append(str(tag))
    return "\n".join(important_content)


def convert_html_to_markdown(
    html: str, url: Optional[str] = None, debug: bool = False
) -> Optional[str]:
    """
    Convert page HTML to readable markdown.

    Args:
        html: The full document HTML
        url: Page URL, only used for log messages
        debug: Log each fallback decision

    Returns:
        Markdown text, or None if nothing readable was found.
    """
    if not html or not html.strip():
        return None

    soup = clean_html(html)
    content = select_main_content(soup, debug=debug)
    markdown = post_process_markdown(to_markdown(str(content)))

    if len(markdown) < MIN_CONTENT_CHARS and soup.body is not None and content is not soup.body:
        if debug:
            logger.debug(f"Thin main content ({len(markdown)} chars) for {url}, using <body>")
        body_markdown = post_process_markdown(to_markdown(str(soup.body)))
        if len(body_markdown) > len(markdown):
            markdown = body_markdown

    if len(markdown) < MIN_CONTENT_CHARS:
        direct_content = direct_tag_extraction(soup)
        if direct_content:
            direct_markdown = post_process_markdown(to_markdown(direct_content))
            if len(direct_markdown) > len(markdown):
                if debug:
                    logger.debug(f"Using direct tag extraction for {url}")
                markdown = direct_markdown

    if not markdown.strip():
        return None
    return markdown
