from __future__ import annotations

import gzip
import logging
import re
import zlib
from typing import Sequence

from ..errors import ParseError
from .types import Diagnostics, ExecutionRequest, ExecutionResult

logger = logging.getLogger(__name__)

DELIMITER_LENGTH = 16
TERMINATOR = b"R"
_DIAGNOSTICS_PATTERN = re.compile(
    r"(.*)"
    r"Real time: ([\d.]+) s\n"
    r"User time: ([\d.]+) s\n"
    r"Sys\. time: ([\d.]+) s\n"
    r"CPU share: ([\d.]+) %\n"
    r"Exit code: (\d+)\Z",
    re.DOTALL,
)


def frame_variable(name: str, values: Sequence[str]) -> bytes:
    """Frame a variable field: name, value count, then NUL-terminated values.

    Example:
        ```python
        frame_variable("Vargs", ["-v"])  # b"Vargs\\x001\\x00-v\\x00"
        ```
    """
    body = b"".join(value.encode("utf-8") + b"\0" for value in values)
    return name.encode("utf-8") + b"\0" + str(len(values)).encode("ascii") + b"\0" + body


def frame_file(name: str, content: str) -> bytes:
    """Frame a file field: name, UTF-8 byte length, then the raw bytes.

    Example:
        ```python
        frame_file("F.input.tio", "é")  # length prefix is 2, not 1
        ```
    """
    data = content.encode("utf-8")
    return name.encode("utf-8") + b"\0" + str(len(data)).encode("ascii") + b"\0" + data


def build_frame(code: str, request: ExecutionRequest) -> bytes:
    """Build the uncompressed request frame in protocol field order.

    Example:
        ```python
        frame = build_frame("print(1)", ExecutionRequest("python3", "", 500))
        ```
    """
    return b"".join(
        (
            frame_variable("Vargs", request.argv),
            frame_variable("Vlang", [request.language]),
            frame_variable("VTIO_CFLAGS", request.cflags),
            frame_variable("VTIO_OPTIONS", []),
            frame_file("F.code.tio", code),
            frame_file("F.input.tio", request.stdin),
            TERMINATOR,
        )
    )


def encode_request(code: str, request: ExecutionRequest) -> bytes:
    """Frame and raw-deflate (no zlib header) a request at maximum compression.

    Example:
        ```python
        body = encode_request("print(1)", ExecutionRequest("python3", "", 500))
        ```
    """
    frame = build_frame(code, request)
    compressor = zlib.compressobj(9, zlib.DEFLATED, -zlib.MAX_WBITS)
    body = compressor.compress(frame) + compressor.flush()
    logger.debug("Encoded request frame: %d bytes raw, %d bytes deflated", len(frame), len(body))
    return body


def parse_diagnostics(segment: str) -> Diagnostics:
    """Parse the trailing six-line diagnostics block of a response segment.

    Example:
        ```python
        diag = parse_diagnostics("Real time: 0.1 s\\nUser time: 0.0 s\\nSys. time: 0.0 s\\nCPU share: 0 %\\nExit code: 0")
        ```
    """
    match = _DIAGNOSTICS_PATTERN.match(segment)
    if match is None:
        raise ParseError("Unable to parse tio.run diagnostics output")
    debug, real_time, user_time, sys_time, cpu_share, exit_code = match.groups()
    try:
        return Diagnostics(
            debug=debug,
            real_time=float(real_time),
            user_time=float(user_time),
            sys_time=float(sys_time),
            cpu_share=float(cpu_share),
            exit_code=int(exit_code),
        )
    except ValueError as exc:
        raise ParseError(f"Malformed number in tio.run diagnostics: {exc}") from exc


def decode_response(raw: bytes) -> ExecutionResult:
    """Gunzip a response and split it into program output and diagnostics.

    Example:
        ```python
        result = decode_response(gzip.compress(payload))
        ```
    """
    try:
        content = gzip.decompress(raw).decode("utf-8", errors="replace")
    except (OSError, EOFError, zlib.error) as exc:
        raise ParseError(f"Unable to decompress tio.run response: {exc}") from exc

    delimiter = content[:DELIMITER_LENGTH]
    if len(delimiter) < DELIMITER_LENGTH:
        raise ParseError("Unexpected response format received from tio.run")
    sections = content[DELIMITER_LENGTH:].split(delimiter)
    if len(sections) < 2:
        raise ParseError("Unexpected response format received from tio.run")

    diagnostics = parse_diagnostics(sections[1])
    return ExecutionResult(
        output=sections[0] or diagnostics.debug,
        timed_out=False,
        real_time=diagnostics.real_time,
        user_time=diagnostics.user_time,
        sys_time=diagnostics.sys_time,
        cpu_share=diagnostics.cpu_share,
        exit_code=diagnostics.exit_code,
    )
