"""Run HTML to markdown conversion in a one-shot worker process.

DOM parsing is CPU bound and can take arbitrarily long on pathological pages,
so each extraction gets its own process that can be killed when its timeout
expires. The worker answers over a pipe with a single message,
``{"content": str | None, "error": str | None}``.
"""

import asyncio
import contextlib
import multiprocessing
import os
from multiprocessing.connection import Connection
from typing import Optional

from tabscribe.errors import ExtractionError, WorkerTimeoutError
from tabscribe.extract.html_to_md import convert_html_to_markdown
from tabscribe.utils.logger import logger

# spawn: forking a process that runs an asyncio loop and threads is unsafe
MP_CONTEXT = multiprocessing.get_context("spawn")

EMPTY_CONTENT_MESSAGE = "failed to parse the page content"

# Time allowed for a killed worker to be reaped (seconds)
JOIN_TIMEOUT = 1.0


def _extract_in_worker(conn: Connection, html: str, url: str) -> None:
    """Worker entry point; never raises, always sends exactly one message."""
    try:
        with open(os.devnull, "w") as devnull, contextlib.redirect_stdout(
            devnull
        ), contextlib.redirect_stderr(devnull), logger.suppress():
            content = convert_html_to_markdown(html, url)
        conn.send({"content": content, "error": None})
    except Exception as e:
        conn.send({"content": None, "error": f"{type(e).__name__}: {e}"})
    finally:
        conn.close()


def _stop(process) -> None:
    if process.is_alive():
        process.kill()
    process.join(JOIN_TIMEOUT)


def run_extraction(html: str, url: str, timeout: float) -> str:
    """Blocking: run one extraction worker and return its markdown.

    Raises WorkerTimeoutError if no answer arrives within ``timeout`` seconds
    (the worker is killed), ExtractionError if parsing failed or produced nothing.
    """
    receiver, sender = MP_CONTEXT.Pipe(duplex=False)
    process = MP_CONTEXT.Process(
        target=_extract_in_worker, args=(sender, html, url), daemon=True
    )
    process.start()
    sender.close()
    try:
        if not receiver.poll(timeout):
            raise WorkerTimeoutError(f"content extraction timed out after {timeout:g}s for {url}")
        try:
            message = receiver.recv()
        except EOFError:
            raise ExtractionError(
                f"extraction worker exited with code {process.exitcode} for {url}"
            ) from None
    finally:
        _stop(process)
        receiver.close()

    error: Optional[str] = message.get("error")
    if error:
        raise ExtractionError(f"{EMPTY_CONTENT_MESSAGE}: {error}")
    content: Optional[str] = message.get("content")
    if not content or not content.strip():
        raise ExtractionError(EMPTY_CONTENT_MESSAGE)
    return content


async def extract_content(html: str, url: str, timeout_ms: int) -> str:
    """Convert ``html`` to markdown without blocking the event loop."""
    timeout = timeout_ms / 1000
    logger.debug(f"Extracting content from {url} ({len(html)} chars, timeout {timeout:g}s)")
    try:
        return await asyncio.to_thread(run_extraction, html, url, timeout)
    except WorkerTimeoutError as e:
        logger.warning(str(e))
        raise
