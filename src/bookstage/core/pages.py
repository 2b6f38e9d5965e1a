"""Page routes: a template bound to its domain, loader and renderer."""

from collections.abc import Awaitable, Callable, Hashable, Mapping
from dataclasses import dataclass
from typing import Any

from bookstage.core.domains import DomainProvider
from bookstage.core.errors import InvalidId, ServerError
from bookstage.core.routes import ResolvedParams, RouteTemplate

# Turns raw params into a lookup key; raises ValueError when malformed.
KeyFunc = Callable[[ResolvedParams], Hashable]
LoadFunc = Callable[[Any], Awaitable[Any | None]]
RenderFunc = Callable[[Any], str]


@dataclass(frozen=True)
class PageRoute:
    """A prerenderable page.

    Attributes:
        template: Route template, e.g. ``/books/:book_id``
        domains: Domain provider per parameter slot
        key: Validates params and returns the record key
        load: Fetches the record for a key, returning None when unknown
        render: Renders a record into a full document
        noun: Human name of the record, used in failure messages
    """

    template: RouteTemplate
    domains: Mapping[str, DomainProvider]
    key: KeyFunc
    load: LoadFunc
    render: RenderFunc
    noun: str = "page"

    @property
    def invalid_message(self) -> str:
        return f"Invalid {self.noun} ID."

    @property
    def not_found_message(self) -> str:
        return f"{self.noun.capitalize()} not found."

    def resolve_key(self, params: ResolvedParams) -> Hashable:
        """Validate params and return the lookup key.

        Raises:
            InvalidId: If the key function rejects the params
            ServerError: If the key function fails in any other way
        """
        try:
            return self.key(params)
        except (ValueError, KeyError) as e:
            raw = ",".join(params.values())
            raise InvalidId(raw, self.invalid_message) from e
        except Exception as e:
            raise ServerError.from_exception(e) from e
