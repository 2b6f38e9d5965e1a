"""Error types for page rendering and static generation.

Page errors are raised inside a render invocation and always caught by the
error boundary. Domain errors are raised at setup time and abort generation.
"""


class BookstageError(Exception):
    """Base class for all bookstage errors."""


class PageError(BookstageError):
    """A render invocation failed with a user-visible outcome."""


class InvalidId(PageError):
    """The route parameter failed syntactic validation."""

    def __init__(self, value: str, message: str = "Invalid ID.") -> None:
        super().__init__(message)
        self.value = value


class NotFound(PageError):
    """The identifier is well-formed but has no matching record."""

    def __init__(self, key: object, message: str = "Not found.") -> None:
        super().__init__(message)
        self.key = key


class ServerError(PageError):
    """The record lookup itself failed.

    ``detail`` is diagnostic text only and is never empty.
    """

    def __init__(self, detail: str) -> None:
        self.detail = detail or "unknown error"
        super().__init__(f"Server error: {self.detail}.")

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ServerError":
        """Wrap a backend exception, falling back to its type name."""
        return cls(str(exc) or type(exc).__name__)


class DomainError(BookstageError):
    """A parameter domain could not be computed."""


class RecordSourceError(BookstageError):
    """A record source failed to answer a lookup."""
