"""Route templates with literal and parameter segments.

Template syntax uses a leading colon for parameter slots::

    /books/:book_id

Matching splits on ``/`` and compares segment by segment. A slot captures
the raw segment text, which may be empty (``/books/`` yields ``book_id=""``).
Validation of captured values is left to the page route.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from urllib.parse import quote, unquote


@dataclass(frozen=True)
class Segment:
    """A parsed segment of a route template."""

    value: str
    is_param: bool = False

    def __str__(self) -> str:
        return f":{self.value}" if self.is_param else self.value


class ResolvedParams(Mapping[str, str]):
    """Immutable assignment of one value to every slot of a template."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, str] | None = None, /, **kwargs: str) -> None:
        merged = dict(values or {})
        merged.update(kwargs)
        self._values = merged

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __hash__(self) -> int:
        return hash(tuple(self._values.items()))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Mapping):
            return dict(self._values) == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"ResolvedParams({self._values!r})"


class RouteTemplate:
    """An ordered sequence of literal and parameter segments.

    Parameter slot names are unique within a template.
    """

    __slots__ = ("_pattern", "_segments", "_slots")

    def __init__(self, segments: list[Segment], pattern: str | None = None) -> None:
        """Initialize template.

        Args:
            segments: Parsed segments in path order
            pattern: Original template text (rebuilt from segments if omitted)

        Raises:
            ValueError: If a slot name is empty or repeated
        """
        slots: list[str] = []
        for segment in segments:
            if not segment.is_param:
                continue
            if not segment.value:
                raise ValueError("Parameter slot name must not be empty")
            if segment.value in slots:
                raise ValueError(f"Duplicate parameter slot: {segment.value}")
            slots.append(segment.value)

        self._segments = tuple(segments)
        self._slots = tuple(slots)
        self._pattern = pattern or "/" + "/".join(str(s) for s in segments)

    @classmethod
    def parse(cls, pattern: str) -> "RouteTemplate":
        """Parse template text such as ``/books/:book_id``.

        Raises:
            ValueError: If the pattern is not absolute or slots are invalid
        """
        if not pattern.startswith("/"):
            raise ValueError(f"Route template must start with '/': {pattern!r}")

        segments = [
            Segment(part[1:], is_param=True) if part.startswith(":") else Segment(part)
            for part in pattern[1:].split("/")
        ]
        return cls(segments, pattern)

    @property
    def pattern(self) -> str:
        """Template text."""
        return self._pattern

    @property
    def segments(self) -> tuple[Segment, ...]:
        return self._segments

    @property
    def slots(self) -> tuple[str, ...]:
        """Parameter slot names in path order."""
        return self._slots

    def match(self, path: str) -> ResolvedParams | None:
        """Extract parameters from a request path.

        Returns:
            ResolvedParams if the path fits the template, None otherwise
        """
        if not path.startswith("/"):
            return None

        parts = path[1:].split("/")
        if len(parts) != len(self._segments):
            return None

        values: dict[str, str] = {}
        for segment, part in zip(self._segments, parts, strict=True):
            if segment.is_param:
                values[segment.value] = unquote(part)
            elif segment.value != part:
                return None

        return ResolvedParams(values)

    def substitute(self, params: Mapping[str, str]) -> str:
        """Build the concrete path for a set of parameters.

        Raises:
            KeyError: If a slot has no value
        """
        parts = [
            quote(params[segment.value], safe="") if segment.is_param else segment.value
            for segment in self._segments
        ]
        return "/" + "/".join(parts)

    def __repr__(self) -> str:
        return f"RouteTemplate({self._pattern!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RouteTemplate):
            return self._segments == other._segments
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._segments)
