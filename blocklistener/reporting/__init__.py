"""Error telemetry: Sentry when a DSN is configured, otherwise a no-op."""

import logging

from blocklistener.reporting.reporter import ErrorReporter, NullErrorReporter

logger = logging.getLogger(__name__)


def create_error_reporter(dsn: str | None, environment: str | None = None) -> ErrorReporter:
    """Return a SentryErrorReporter for a DSN, NullErrorReporter when dsn is empty."""
    if not dsn:
        return NullErrorReporter()
    from blocklistener.reporting.sentry import SentryErrorReporter

    logger.info("Sentry error reporting enabled (environment=%s)", environment)
    return SentryErrorReporter(dsn=dsn, environment=environment)


__all__ = ["ErrorReporter", "NullErrorReporter", "create_error_reporter"]
