"""Book catalog and detail page route."""

from bookstage.books.catalog import DEFAULT_BOOKS, Book, Catalog, RecordSource, list_book_ids
from bookstage.books.page import BOOK_ROUTE, book_route, render_book_page, validate_book_id

__all__ = [
    "BOOK_ROUTE",
    "DEFAULT_BOOKS",
    "Book",
    "Catalog",
    "RecordSource",
    "book_route",
    "list_book_ids",
    "render_book_page",
    "validate_book_id",
]
