from __future__ import annotations

import logging
from pathlib import Path

import aiohttp

from .errors import CancellationError, TioRunnerError
from .execution.cancellation import CancelSignal
from .execution.codec import decode_response, encode_request
from .execution.resolver import EndpointResolver
from .execution.transport import execute
from .execution.types import ExecutionRequest, ExecutionResult, RunOptions, TestCaseRun
from .languages import map_language
from .settings import RunnerSettings

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124

DEFAULT_SETTINGS = RunnerSettings()
DEFAULT_RESOLVER = EndpointResolver(DEFAULT_SETTINGS)


class ExecutionRegistry:
    """Track the cancel signals of in-flight executions so they can all be aborted.

    Example:
        ```python
        registry = ExecutionRegistry()
        registry.kill_all()
        ```
    """

    def __init__(self) -> None:
        """Create an empty registry.

        Example:
            ```python
            registry = ExecutionRegistry()
            ```
        """
        self._signals: set[CancelSignal] = set()

    def __len__(self) -> int:
        """Return the number of executions currently registered.

        Example:
            ```python
            active = len(registry)
            ```
        """
        return len(self._signals)

    def add(self, signal: CancelSignal) -> None:
        """Register the signal of an execution that is starting.

        Example:
            ```python
            registry.add(signal)
            ```
        """
        self._signals.add(signal)

    def discard(self, signal: CancelSignal) -> None:
        """Forget the signal of an execution that has finished.

        Example:
            ```python
            registry.discard(signal)
            ```
        """
        self._signals.discard(signal)

    def kill_all(self) -> int:
        """Cancel every registered execution and clear the registry.

        Example:
            ```python
            aborted = registry.kill_all()
            ```
        """
        signals = list(self._signals)
        self._signals.clear()
        for signal in signals:
            signal.cancel()
        return len(signals)


RUNNING_EXECUTIONS = ExecutionRegistry()


def kill_running() -> int:
    """Abort every execution started through `run_test_case`.

    Example:
        ```python
        aborted = kill_running()
        ```
    """
    count = RUNNING_EXECUTIONS.kill_all()
    logger.info("Aborted %d running execution(s)", count)
    return count


def normalize_options(options: RunOptions, settings: RunnerSettings) -> ExecutionRequest:
    """Fill option defaults and apply the timeout floor.

    Example:
        ```python
        req = normalize_options(RunOptions(language="python3", timeout_ms=1), RunnerSettings())
        ```
    """
    requested = options.timeout_ms if options.timeout_ms is not None else settings.default_timeout_ms
    return ExecutionRequest(
        language=options.language,
        stdin=options.stdin or "",
        timeout_ms=settings.effective_timeout_ms(requested),
        argv=list(options.argv),
        cflags=list(options.cflags),
        cancel_signal=options.cancel_signal,
    )


def timed_out_result(timeout_ms: int) -> ExecutionResult:
    """Build the sentinel result reported when the internal timer fires.

    Example:
        ```python
        result = timed_out_result(500)
        ```
    """
    seconds = timeout_ms / 1000
    return ExecutionResult(
        output=f"Request timed out after {timeout_ms}ms",
        timed_out=True,
        real_time=seconds,
        user_time=seconds,
        sys_time=seconds,
        cpu_share=0.0,
        exit_code=TIMEOUT_EXIT_CODE,
    )


async def _run_with_session(
    code: str,
    request: ExecutionRequest,
    session: aiohttp.ClientSession,
    resolver: EndpointResolver,
    settings: RunnerSettings,
) -> ExecutionResult:
    """Resolve, encode, execute and decode one request over an open session.

    Example:
        ```python
        result = await _run_with_session(code, request, session, resolver, settings)
        ```
    """
    endpoint = await resolver.resolve(session)
    body = encode_request(code, request)
    raw = await execute(
        session,
        endpoint,
        body,
        timeout_ms=request.timeout_ms,
        cancel_signal=request.cancel_signal,
        base_url=settings.base_url,
    )
    if raw is None:
        return timed_out_result(request.timeout_ms)
    result = decode_response(raw)
    logger.info(
        "tio.run %s finished with exit code %d in %.3fs",
        request.language,
        result.exit_code,
        result.real_time,
    )
    return result


async def run_code(
    code: str,
    options: RunOptions,
    *,
    resolver: EndpointResolver | None = None,
    session: aiohttp.ClientSession | None = None,
    settings: RunnerSettings | None = None,
) -> ExecutionResult:
    """Execute source code on tio.run and return its decoded metrics.

    Example:
        ```python
        result = await run_code("print(input())", RunOptions(language="python3", stdin="hi"))
        ```
    """
    resolved_settings = settings or DEFAULT_SETTINGS
    resolved_resolver = resolver or DEFAULT_RESOLVER
    request = normalize_options(options, resolved_settings)
    if request.cancel_signal is not None and request.cancel_signal.cancelled:
        raise CancellationError()

    if session is not None:
        return await _run_with_session(code, request, session, resolved_resolver, resolved_settings)
    async with aiohttp.ClientSession() as owned_session:
        return await _run_with_session(code, request, owned_session, resolved_resolver, resolved_settings)


async def run_test_case(
    source_path: str | Path,
    stdin: str,
    *,
    language: str | None = None,
    compiler: str = "",
    tio_language: str | None = None,
    timeout_ms: int | None = None,
    registry: ExecutionRegistry | None = None,
    resolver: EndpointResolver | None = None,
    session: aiohttp.ClientSession | None = None,
    settings: RunnerSettings | None = None,
) -> TestCaseRun:
    """Run a source file against one stdin and fold every failure into the result.

    Example:
        ```python
        run = await run_test_case("main.cpp", "1 2\\n", language="cpp", compiler="g++")
        ```
    """
    run = TestCaseRun()
    try:
        token = tio_language or (map_language(language, compiler) if language else None)
    except TioRunnerError as exc:
        token = None
        logger.error("Could not map language %r: %s", language, exc)
    if not token:
        run.stderr = "Unable to resolve a tio.run language. Please configure a default language."
        run.signal = "ERROR"
        return run

    logger.info("Running test case via tio.run: %s %s", token, source_path)
    active = registry if registry is not None else RUNNING_EXECUTIONS
    signal = CancelSignal()
    active.add(signal)
    try:
        code = Path(source_path).read_text(encoding="utf-8", errors="replace")
        result = await run_code(
            code,
            RunOptions(language=token, stdin=stdin, timeout_ms=timeout_ms, cancel_signal=signal),
            resolver=resolver,
            session=session,
            settings=settings,
        )
    except CancellationError:
        run.stderr = "Execution aborted by user."
        run.signal = "ABORTED"
        logger.info("Run aborted by user request")
    except (TioRunnerError, OSError) as exc:
        run.stderr = str(exc)
        run.signal = "ERROR"
        logger.error("Remote execution failed: %s", exc)
    else:
        run.stdout = result.output
        run.code = result.exit_code
        run.time_ms = max(0, round(result.real_time * 1000))
        run.timed_out = result.timed_out
    finally:
        active.discard(signal)
    return run
