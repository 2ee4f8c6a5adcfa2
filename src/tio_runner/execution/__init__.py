from .cancellation import AbortContext, AbortReason, CancelSignal
from .codec import decode_response, encode_request, parse_diagnostics
from .resolver import EndpointResolver
from .transport import execute
from .types import Diagnostics, ExecutionRequest, ExecutionResult, RunOptions, TestCaseRun

__all__ = [
    "AbortContext",
    "AbortReason",
    "CancelSignal",
    "Diagnostics",
    "EndpointResolver",
    "ExecutionRequest",
    "ExecutionResult",
    "RunOptions",
    "TestCaseRun",
    "decode_response",
    "encode_request",
    "execute",
    "parse_diagnostics",
]
