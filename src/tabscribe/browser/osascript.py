import asyncio
import secrets
import string
from dataclasses import dataclass
from typing import Awaitable, Callable, List, NoReturn, Optional, TypeVar, Union

from tabscribe.errors import ContentReadError, ScriptExecutionError, TabNotFoundError
from tabscribe.types.tab import TabRef
from tabscribe.utils.logger import logger

OSASCRIPT = "osascript"

# Wall-clock limits for one osascript run (seconds)
DEFAULT_TIMEOUT = 5.0
CONTENT_TIMEOUT = 10.0

# Limit enforced inside content scripts via "with timeout", since running JS in a
# suspended tab can block forever
PAGE_READ_TIMEOUT = 3

MAX_OUTPUT_BYTES = 5 * 1024 * 1024
READ_CHUNK_BYTES = 64 * 1024

MAX_RETRIES = 1
RETRY_DELAY = 1.0  # seconds, doubled per attempt

ERROR_MARKER = "ERROR"

# AppleScript "Can't get <object>" and "Invalid index"
NOT_FOUND_ERROR_NUMBERS = frozenset({-1728, -1719})

SEPARATOR_ALPHABET = string.ascii_lowercase + string.digits
SEPARATOR_TOKEN_LENGTH = 12

T = TypeVar("T")


def escape_applescript(value: str) -> str:
    """Escape a string for use inside an AppleScript string literal.

    Backslashes go first so the escapes added afterwards are not doubled.
    """
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )


def separator() -> str:
    """Fresh field separator for one script run."""
    token = "".join(secrets.choice(SEPARATOR_ALPHABET) for _ in range(SEPARATOR_TOKEN_LENGTH))
    return f"<|SEP:{token}|>"


def guarded(body: str, sep: str) -> str:
    """Wrap script text so AppleScript errors come back as an ERROR-marked result."""
    return f"""
try
{body}
on error errMsg number errNum
  return "{ERROR_MARKER}" & "{sep}" & (errNum as text) & "{sep}" & errMsg
end try
"""


@dataclass(frozen=True)
class ScriptOutput:
    fields: List[str]


@dataclass(frozen=True)
class ScriptFailure:
    message: str
    number: Optional[int] = None


ScriptResult = Union[ScriptOutput, ScriptFailure]


def decode_script_result(raw: str, sep: str, maxsplit: int = -1) -> ScriptResult:
    """Decode osascript stdout into either its fields or the reported failure.

    The ERROR marker is checked before any splitting so an error message is
    never mistaken for page fields.
    """
    marker = f"{ERROR_MARKER}{sep}"
    if raw.startswith(marker):
        body = raw[len(marker) :]
        number_text, found, message = body.partition(sep)
        number: Optional[int] = None
        if found:
            try:
                number = int(number_text.strip())
            except ValueError:
                message = body
        else:
            message = body
        return ScriptFailure(message=message.strip() or "unknown AppleScript error", number=number)
    return ScriptOutput(fields=raw.split(sep, maxsplit))


def raise_for_failure(failure: ScriptFailure) -> NoReturn:
    if failure.number in NOT_FOUND_ERROR_NUMBERS:
        raise TabNotFoundError(failure.message)
    raise ScriptExecutionError(failure.message)


async def retry(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = MAX_RETRIES,
    retry_delay: float = RETRY_DELAY,
) -> T:
    """Run ``fn`` with exponential backoff on ScriptExecutionError.

    Makes at most ``max_retries + 1`` attempts and re-raises the last error as is.
    """
    for attempt in range(max_retries + 1):
        try:
            return await fn()
        except ScriptExecutionError as e:
            if attempt == max_retries:
                logger.error(f"osascript failed after {attempt + 1} attempt(s): {e}")
                raise
            delay = retry_delay * 2**attempt
            logger.warning(f"osascript attempt {attempt + 1} failed ({e}), retrying in {delay:g}s")
            await asyncio.sleep(delay)
    raise AssertionError("unreachable")


async def _read_capped(stream: asyncio.StreamReader, limit: int) -> bytes:
    chunks: List[bytes] = []
    size = 0
    while True:
        chunk = await stream.read(READ_CHUNK_BYTES)
        if not chunk:
            return b"".join(chunks)
        size += len(chunk)
        if size > limit:
            raise ScriptExecutionError(f"osascript output exceeded {limit} bytes")
        chunks.append(chunk)


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        return
    await proc.wait()


async def run_osascript(script: str, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Run one script through osascript once, returning stripped stdout."""
    try:
        proc = await asyncio.create_subprocess_exec(
            OSASCRIPT,
            "-e",
            script,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ScriptExecutionError(f"could not start {OSASCRIPT}: {e}") from e

    async def collect():
        assert proc.stdout is not None and proc.stderr is not None
        out, err, _ = await asyncio.gather(
            _read_capped(proc.stdout, MAX_OUTPUT_BYTES), proc.stderr.read(), proc.wait()
        )
        return out, err

    try:
        stdout, stderr = await asyncio.wait_for(collect(), timeout=timeout)
    except asyncio.TimeoutError:
        await _kill(proc)
        raise ScriptExecutionError(f"osascript timed out after {timeout:g}s") from None
    except ScriptExecutionError:
        await _kill(proc)
        raise

    stderr_text = stderr.decode("utf-8", errors="replace").strip()
    if proc.returncode != 0:
        raise ScriptExecutionError(
            f"osascript exited with code {proc.returncode}: {stderr_text or 'no error output'}"
        )
    if stderr_text:
        logger.warning(f"osascript stderr: {stderr_text}")
    return stdout.decode("utf-8", errors="replace").strip()


async def execute_applescript(
    script: str,
    timeout: float = DEFAULT_TIMEOUT,
    max_retries: int = MAX_RETRIES,
    retry_delay: float = RETRY_DELAY,
) -> str:
    return await retry(
        lambda: run_osascript(script, timeout=timeout),
        max_retries=max_retries,
        retry_delay=retry_delay,
    )


async def execute_fields(
    script: str, sep: str, maxsplit: int = -1, timeout: float = DEFAULT_TIMEOUT
) -> List[str]:
    """Execute a guarded script and return its separator-delimited fields.

    Marker failures are answers from the browser (missing tab, page read timed
    out), so they are raised directly instead of being retried.
    """
    raw = await execute_applescript(script, timeout=timeout)
    result = decode_script_result(raw, sep, maxsplit)
    if isinstance(result, ScriptFailure):
        raise_for_failure(result)
    return result.fields


async def execute_tab_creation_script(
    url: str, make_tab_script: Callable[[str, str], str]
) -> TabRef:
    """Escape ``url``, run the script built by ``make_tab_script`` and parse the new TabRef."""
    sep = separator()
    script = make_tab_script(escape_applescript(url), sep)
    fields = await execute_fields(script, sep)
    if len(fields) < 2 or not fields[0].strip() or not fields[1].strip():
        raise ContentReadError(f"Failed to read the new tab reference for {url}")
    return TabRef(window_id=fields[0].strip(), tab_id=fields[1].strip())
