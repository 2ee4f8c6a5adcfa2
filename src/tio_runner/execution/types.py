from __future__ import annotations

from dataclasses import dataclass, field

from .cancellation import CancelSignal


@dataclass(slots=True)
class RunOptions:
    """Caller-facing options for one remote execution.

    Example:
        ```python
        options = RunOptions(language="python3", stdin="4\\n", timeout_ms=2000)
        ```
    """

    language: str
    stdin: str = ""
    timeout_ms: int | None = None
    argv: list[str] = field(default_factory=list)
    cflags: list[str] = field(default_factory=list)
    cancel_signal: CancelSignal | None = None


@dataclass(slots=True)
class ExecutionRequest:
    """Normalized request consumed by the encoder and the transport.

    Example:
        ```python
        req = ExecutionRequest(language="c-gcc", stdin="", timeout_ms=500)
        ```
    """

    language: str
    stdin: str
    timeout_ms: int
    argv: list[str] = field(default_factory=list)
    cflags: list[str] = field(default_factory=list)
    cancel_signal: CancelSignal | None = None


@dataclass(slots=True)
class ExecutionResult:
    """Structured execution metrics decoded from a tio.run response.

    Example:
        ```python
        result = ExecutionResult("hi", False, 0.1, 0.05, 0.01, 60.0, 0)
        ```
    """

    output: str
    timed_out: bool
    real_time: float
    user_time: float
    sys_time: float
    cpu_share: float
    exit_code: int


@dataclass(frozen=True, slots=True)
class Diagnostics:
    """Metrics parsed from the trailing diagnostics block of a response.

    Example:
        ```python
        diag = Diagnostics("", 0.12, 0.03, 0.01, 33.3, 0)
        ```
    """

    debug: str
    real_time: float
    user_time: float
    sys_time: float
    cpu_share: float
    exit_code: int


@dataclass(slots=True)
class TestCaseRun:
    """Outcome of running one test case, with failures folded into `signal`.

    Example:
        ```python
        run = TestCaseRun(stdout="3\\n", code=0, time_ms=12)
        ```
    """

    __test__ = False

    stdout: str = ""
    stderr: str = ""
    code: int | None = None
    signal: str | None = None
    time_ms: int = 0
    timed_out: bool = False
