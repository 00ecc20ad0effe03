import asyncio
import shutil
import sys

import pytest

from tabscribe.browser import osascript
from tabscribe.browser.osascript import (
    ScriptFailure,
    ScriptOutput,
    decode_script_result,
    escape_applescript,
    execute_applescript,
    execute_fields,
    raise_for_failure,
    retry,
    run_osascript,
    separator,
)
from tabscribe.errors import ScriptExecutionError, TabNotFoundError


def test_escape_applescript():
    assert escape_applescript('say "hi"') == 'say \\"hi\\"'
    assert escape_applescript("a\\b") == "a\\\\b"
    assert escape_applescript("line1\nline2\r") == "line1\\nline2\\r"


def test_escape_applescript_backslash_first():
    # an escaped quote must not have its new backslash doubled again
    assert escape_applescript('\\"') == '\\\\\\"'
    assert escape_applescript("https://example.com/?q=a\"b") == 'https://example.com/?q=a\\"b'


def test_separator_is_fresh_and_bracketed():
    seps = {separator() for _ in range(50)}
    assert len(seps) == 50
    for sep in seps:
        assert sep.startswith("<|SEP:") and sep.endswith("|>")


class TestDecodeScriptResult:
    def test_fields(self):
        sep = separator()
        result = decode_script_result(f"a{sep}b{sep}c", sep)
        assert result == ScriptOutput(fields=["a", "b", "c"])

    def test_maxsplit_keeps_separator_in_last_field(self):
        sep = separator()
        result = decode_script_result(f"t{sep}u{sep}x{sep}y", sep, maxsplit=2)
        assert result == ScriptOutput(fields=["t", "u", f"x{sep}y"])

    def test_error_marker_with_number(self):
        sep = separator()
        result = decode_script_result(f"ERROR{sep}-1728{sep}Can't get window id 1.", sep)
        assert result == ScriptFailure(message="Can't get window id 1.", number=-1728)

    def test_error_marker_without_number(self):
        sep = separator()
        result = decode_script_result(f"ERROR{sep}something broke", sep)
        assert result == ScriptFailure(message="something broke", number=None)

    def test_error_marker_is_checked_before_splitting(self):
        sep = separator()
        result = decode_script_result(f"ERROR{sep}-1712{sep}AppleEvent timed out.", sep, 2)
        assert isinstance(result, ScriptFailure)

    def test_error_word_from_another_call_is_content(self):
        result = decode_script_result("ERROR<|SEP:other|>x", separator())
        assert isinstance(result, ScriptOutput)


def test_raise_for_failure_maps_not_found():
    with pytest.raises(TabNotFoundError, match="No active tab"):
        raise_for_failure(ScriptFailure(message="No active tab found", number=-1728))
    with pytest.raises(TabNotFoundError):
        raise_for_failure(ScriptFailure(message="Invalid index.", number=-1719))
    with pytest.raises(ScriptExecutionError, match="timed out"):
        raise_for_failure(ScriptFailure(message="AppleEvent timed out.", number=-1712))


class TestRetry:
    def test_makes_max_retries_plus_one_attempts(self, monkeypatch):
        delays = []

        async def fake_sleep(delay):
            delays.append(delay)

        monkeypatch.setattr(osascript.asyncio, "sleep", fake_sleep)
        attempts = []
        errors = [ScriptExecutionError(f"fail {i}") for i in range(3)]

        async def always_fails():
            attempts.append(1)
            raise errors[len(attempts) - 1]

        with pytest.raises(ScriptExecutionError) as exc_info:
            asyncio.run(retry(always_fails, max_retries=2, retry_delay=1.0))

        assert len(attempts) == 3
        assert exc_info.value is errors[-1]
        assert delays == [1.0, 2.0]
        assert all(a < b for a, b in zip(delays, delays[1:]))

    def test_returns_first_success(self, monkeypatch):
        async def fake_sleep(delay):
            pass

        monkeypatch.setattr(osascript.asyncio, "sleep", fake_sleep)
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise ScriptExecutionError("transient")
            return "ok"

        assert asyncio.run(retry(flaky, max_retries=1)) == "ok"
        assert len(attempts) == 2

    def test_other_errors_are_not_retried(self):
        attempts = []

        async def broken():
            attempts.append(1)
            raise TabNotFoundError("gone")

        with pytest.raises(TabNotFoundError):
            asyncio.run(retry(broken, max_retries=2))
        assert len(attempts) == 1


@pytest.fixture
def python_as_osascript(monkeypatch):
    """Run scripts as Python code so the process handling can be tested anywhere."""
    real_exec = asyncio.create_subprocess_exec

    async def fake_exec(program, flag, script, **kwargs):
        return await real_exec(sys.executable, "-c", script, **kwargs)

    monkeypatch.setattr(osascript.asyncio, "create_subprocess_exec", fake_exec)


class TestRunOsascript:
    def test_returns_stripped_stdout(self, python_as_osascript):
        assert asyncio.run(run_osascript("print('  hello  ')")) == "hello"

    def test_stderr_is_not_fatal(self, python_as_osascript):
        script = "import sys; sys.stderr.write('warning\\n'); print('ok')"
        assert asyncio.run(run_osascript(script)) == "ok"

    def test_non_zero_exit(self, python_as_osascript):
        script = "import sys; sys.stderr.write('boom'); sys.exit(3)"
        with pytest.raises(ScriptExecutionError, match="code 3: boom"):
            asyncio.run(run_osascript(script))

    def test_timeout_kills_process(self, python_as_osascript):
        with pytest.raises(ScriptExecutionError, match="timed out"):
            asyncio.run(run_osascript("import time; time.sleep(10)", timeout=0.5))

    def test_output_cap(self, python_as_osascript, monkeypatch):
        monkeypatch.setattr(osascript, "MAX_OUTPUT_BYTES", 1000)
        with pytest.raises(ScriptExecutionError, match="exceeded"):
            asyncio.run(run_osascript("print('x' * 5000)"))

    def test_missing_interpreter(self, monkeypatch):
        monkeypatch.setattr(osascript, "OSASCRIPT", "/nonexistent/osascript")
        with pytest.raises(ScriptExecutionError, match="could not start"):
            asyncio.run(run_osascript('return "x"'))


def test_execute_fields_raises_marker_without_retrying(fake_osascript):
    fake = fake_osascript(lambda script, sep: f"ERROR{sep}-1728{sep}No active tab found")
    script_sep = separator()
    with pytest.raises(TabNotFoundError, match="No active tab found"):
        asyncio.run(execute_fields(f'return "{script_sep}"', script_sep))
    assert len(fake.scripts) == 1


def test_execute_applescript_retries_process_failures(monkeypatch):
    calls = []

    async def failing(script, timeout=5.0):
        calls.append(script)
        raise ScriptExecutionError("osascript exited with code 1")

    async def fake_sleep(delay):
        pass

    monkeypatch.setattr(osascript, "run_osascript", failing)
    monkeypatch.setattr(osascript.asyncio, "sleep", fake_sleep)
    with pytest.raises(ScriptExecutionError):
        asyncio.run(execute_applescript('return "x"', max_retries=1))
    assert len(calls) == 2


@pytest.mark.skipif(
    sys.platform != "darwin" or shutil.which("osascript") is None,
    reason="osascript is only available on macOS",
)
def test_osascript_is_available():
    assert asyncio.run(execute_applescript('return "Hello World"')) == "Hello World"
