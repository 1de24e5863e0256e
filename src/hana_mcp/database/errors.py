"""Error types for the downstream database layer."""


class DatabaseError(Exception):
    """Base error for all database-layer failures."""


class ConfigurationError(DatabaseError):
    """Connection settings are incomplete; no connection was attempted."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(
            "HANA configuration is incomplete" + (f": {detail}" if detail else "")
        )


class ConnectionUnavailableError(DatabaseError):
    """Every connection attempt failed; a later call may try again."""

    def __init__(self, attempts: int, last_error: str = "") -> None:
        self.attempts = attempts
        self.last_error = last_error
        msg = f"HANA connection unavailable after {attempts} attempt(s)"
        if last_error:
            msg += f": {last_error}"
        super().__init__(msg)


class QueryError(DatabaseError):
    """A statement failed while executing on the downstream session."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Query execution failed: {detail}")
