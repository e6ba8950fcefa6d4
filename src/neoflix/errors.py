"""Domain errors raised by the catalog query and mutation services."""


class NeoflixError(Exception):
    """Base class for every domain failure of a catalog operation."""


class ValidationError(NeoflixError):
    """A mutation could not match the user, movie or relationship it refers to."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = dict(details or {})

    def __str__(self) -> str:
        if not self.details:
            return self.args[0]
        detail = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
        return f"{self.args[0]} ({detail})"


class NotFoundError(NeoflixError):
    """A single-entity lookup matched no rows."""

    def __init__(self, message: str, key):
        super().__init__(message)
        self.key = key


class InvalidParameterError(NeoflixError, ValueError):
    """Sort key outside the allow-list or malformed pagination bounds."""

    def __init__(self, message: str, parameter: str, value=None):
        super().__init__(message)
        self.parameter = parameter
        self.value = value
