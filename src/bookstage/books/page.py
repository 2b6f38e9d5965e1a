"""Book detail page route."""

import re

from bookstage.books.catalog import Book, Catalog, RecordSource, list_book_ids
from bookstage.core.pages import PageRoute
from bookstage.core.routes import ResolvedParams, RouteTemplate
from bookstage.markup import render_template

BOOK_ROUTE = "/books/:book_id"

BOOK_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def validate_book_id(params: ResolvedParams) -> str:
    """Return the book id from route params.

    Raises:
        ValueError: If the id is empty or malformed
    """
    book_id = params.get("book_id", "")
    if not BOOK_ID_RE.match(book_id):
        raise ValueError(f"Malformed book id: {book_id!r}")
    return book_id


def render_book_page(book: Book) -> str:
    """Render the detail document for a book."""
    return render_template("book.html", book=book)


def book_route(
    source: RecordSource,
    *,
    catalog: Catalog | None = None,
    domain_size: int | None = None,
) -> PageRoute:
    """Build the ``/books/:book_id`` page route.

    Args:
        source: Record source used to look up books at render time
        catalog: Catalog that supplies the prerender domain. Defaults to
            ``source`` when it is a Catalog.
        domain_size: Repeat catalog ids cyclically up to this many entries

    Raises:
        ValueError: If no catalog is available for the domain
    """
    domain_catalog = catalog
    if domain_catalog is None:
        if not isinstance(source, Catalog):
            raise ValueError("A catalog is required to list book ids")
        domain_catalog = source

    return PageRoute(
        template=RouteTemplate.parse(BOOK_ROUTE),
        domains={"book_id": lambda: list_book_ids(domain_catalog, domain_size)},
        key=validate_book_id,
        load=source.lookup,
        render=render_book_page,
        noun="book",
    )
