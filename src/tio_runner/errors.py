from __future__ import annotations


class TioRunnerError(RuntimeError):
    """Base class for every failure raised by tio-py-runner."""


class ResolutionError(TioRunnerError):
    """The execution endpoint could not be discovered."""


class TransportError(TioRunnerError):
    """The execution request failed at the HTTP level.

    Example:
        ```python
        raise TransportError("tio.run responded with 502 Bad Gateway", status=502)
        ```
    """

    def __init__(self, message: str, *, status: int | None = None) -> None:
        """Store the HTTP status alongside the message when one is known.

        Example:
            ```python
            err = TransportError("connection reset")
            ```
        """
        super().__init__(message)
        self.status = status


class CancellationError(TioRunnerError):
    """The caller's cancel signal aborted the execution."""

    def __init__(self, message: str = "Execution aborted") -> None:
        """Default to the message shown for user-initiated aborts.

        Example:
            ```python
            raise CancellationError()
            ```
        """
        super().__init__(message)


class ParseError(TioRunnerError):
    """The decompressed response does not follow the delimiter/diagnostics format."""


class UnsupportedLanguageError(ValueError, TioRunnerError):
    """No tio.run language token exists for the requested language."""
