"""Sentry error reporter."""

from typing import Any

import sentry_sdk

# Our level names -> Sentry level names
_LEVELS = {
    "debug": "debug",
    "info": "info",
    "warning": "warning",
    "error": "error",
    "critical": "fatal",
    "fatal": "fatal",
}


def _sentry_level(level: str) -> str:
    return _LEVELS.get(level.lower(), "error")


def _apply_context(scope: Any, context: dict[str, Any], context_name: str) -> None:
    """Scalars become tags; the whole dict is attached as a context block."""
    for key, value in context.items():
        if isinstance(value, (str, int, float, bool)):
            scope.set_tag(key, str(value))
    scope.set_context(context_name, context)


class SentryErrorReporter:
    """Reports listener faults and failed deliveries to Sentry.

    Example:
        reporter = SentryErrorReporter(dsn="https://...@sentry.io/...", environment="prod")
        reporter.report(exc, context={"listener_error": True}, level="critical")
    """

    def __init__(self, dsn: str, environment: str | None = None, max_breadcrumbs: int = 3):
        self.dsn = dsn
        self.environment = environment
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            max_breadcrumbs=max_breadcrumbs,
        )

    def report(
        self,
        error: BaseException,
        context: dict[str, Any] | None = None,
        level: str = "error",
    ) -> None:
        """Report an exception.

        Args:
            error: The exception to report
            context: Optional dictionary with additional context
            level: Severity level (debug, info, warning, error, critical)
        """
        with sentry_sdk.new_scope() as scope:
            scope.set_level(_sentry_level(level))
            if context:
                _apply_context(scope, context, "error_context")
            sentry_sdk.capture_exception(error)

    def capture_message(
        self,
        message: str,
        level: str = "error",
        context: dict[str, Any] | None = None,
    ) -> None:
        """Capture a message without an exception.

        Args:
            message: The message to capture
            level: Severity level (debug, info, warning, error, critical)
            context: Optional dictionary with additional context
        """
        with sentry_sdk.new_scope() as scope:
            if context:
                _apply_context(scope, context, "message_context")
            sentry_sdk.capture_message(message, level=_sentry_level(level))
