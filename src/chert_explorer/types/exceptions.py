"""Exception hierarchy for the explorer engine."""

from __future__ import annotations


class ExplorerError(Exception):
    """
    Base exception for all explorer errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class ValidationError(ExplorerError, ValueError):
    """
    Raised when configuration or a backend payload is malformed.

    Fatal to the single call that detected it. A live poll that hits one
    malformed record drops that record only.
    """


class NetworkError(ExplorerError):
    """
    Raised when the transport to the node fails.

    Covers connection errors, timeouts and non-2xx HTTP statuses.
    The polling loop catches it and leaves published state unchanged.
    """


class ProtocolError(ExplorerError):
    """
    Raised when the node answers with an error envelope.

    Attributes:
        code: The JSON-RPC error code reported by the node.
        method: The method that failed, when known.
    """

    def __init__(self, code: int, message: str, *, method: str | None = None) -> None:
        self.code = code
        self.method = method
        prefix = f"{method}: " if method else ""
        super().__init__(f"{prefix}RPC error {code}: {message}")


class NodeUnavailableError(ExplorerError):
    """Raised when a node-only fetch is issued in simulated mode."""


def require(condition: bool, message: str) -> None:
    """
    Assertion-style guard.

    Raises:
        ValidationError: If `condition` is false.
    """
    if not condition:
        raise ValidationError(message)
