"""ErrorReporter protocol and the no-op reporter used when telemetry is disabled."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ErrorReporter(Protocol):
    """Best-effort error telemetry sink."""

    def report(
        self,
        error: BaseException,
        context: dict[str, Any] | None = None,
        level: str = "error",
    ) -> None:
        """Report an exception with optional context tags."""

    def capture_message(
        self,
        message: str,
        level: str = "error",
        context: dict[str, Any] | None = None,
    ) -> None:
        """Capture a message without an exception."""


class NullErrorReporter:
    """Drops everything. Used when no DSN is configured."""

    def report(
        self,
        error: BaseException,
        context: dict[str, Any] | None = None,
        level: str = "error",
    ) -> None:
        pass

    def capture_message(
        self,
        message: str,
        level: str = "error",
        context: dict[str, Any] | None = None,
    ) -> None:
        pass
