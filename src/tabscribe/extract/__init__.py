from tabscribe.extract.html_to_md import convert_html_to_markdown
from tabscribe.extract.worker import extract_content

__all__ = ["convert_html_to_markdown", "extract_content"]
