"""Exception types raised by blocklistener."""


class ListenerError(Exception):
    """Base class for listener errors."""


class ConfigurationError(ListenerError):
    """Settings are missing or invalid. Raised at startup, before any loop runs."""


class GraphQLError(ListenerError):
    """The data source answered with query-level errors."""

    def __init__(self, errors: list[dict]) -> None:
        self.errors = errors
        messages = "; ".join(str(e.get("message", e)) for e in errors)
        super().__init__(messages or "GraphQL query failed")
