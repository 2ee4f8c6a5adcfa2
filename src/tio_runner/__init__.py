from .errors import (
    CancellationError,
    ParseError,
    ResolutionError,
    TioRunnerError,
    TransportError,
    UnsupportedLanguageError,
)
from .execution.cancellation import CancelSignal
from .execution.resolver import EndpointResolver
from .execution.types import ExecutionResult, RunOptions, TestCaseRun
from .languages import map_language
from .runner import ExecutionRegistry, kill_running, run_code, run_test_case
from .settings import RunnerSettings

__all__ = [
    "CancelSignal",
    "CancellationError",
    "EndpointResolver",
    "ExecutionRegistry",
    "ExecutionResult",
    "ParseError",
    "ResolutionError",
    "RunOptions",
    "RunnerSettings",
    "TestCaseRun",
    "TioRunnerError",
    "TransportError",
    "UnsupportedLanguageError",
    "kill_running",
    "map_language",
    "run_code",
    "run_test_case",
]
