"""Book records and the sources that look them up."""

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Protocol

from bookstage.core.domains import cycle_values

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Book:
    """A catalog record."""

    id: str
    title: str
    author: str
    genre: str
    price: str
    publish_date: str
    description: str = ""

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


class RecordSource(Protocol):
    """Backend that resolves book ids to records.

    ``lookup`` returns None for unknown ids and raises on backend failure.
    """

    async def lookup(self, book_id: str) -> Book | None: ...


DEFAULT_BOOKS: tuple[Book, ...] = (
    Book("bk101", "XML Developer's Guide", "Gambardella, Matthew", "Computer", "44.95", "2000-10-01",
         "An in-depth look at creating applications with XML."),
    Book("bk102", "Midnight Rain", "Ralls, Kim", "Fantasy", "5.95", "2000-12-16",
         "A former architect battles corporate zombies."),
    Book("bk103", "Maeve Ascendant", "Corets, Eva", "Fantasy", "5.95", "2000-11-17",
         "After the collapse of a nanotechnology society, the young survivors lay the foundation for a new society."),
    Book("bk104", "Oberon's Legacy", "Corets, Eva", "Fantasy", "5.95", "2001-03-10",
         "In post-apocalypse England, the mysterious agent known only as Oberon helps to create a new life."),
    Book("bk105", "The Sundered Grail", "Corets, Eva", "Fantasy", "5.95", "2001-09-10",
         "The two daughters of Maeve, half-sisters, battle one another for control of England."),
    Book("bk106", "Lover Birds", "Randall, Cynthia", "Romance", "4.95", "2000-09-02",
         "When Carla meets Paul at an ornithology conference, tempers fly as feathers get ruffled."),
    Book("bk107", "Splish Splash", "Thurman, Paula", "Romance", "4.95", "2000-11-02",
         "A deep sea diver finds true love twenty thousand leagues beneath the sea."),
    Book("bk108", "Creepy Crawlies", "Knorr, Stefan", "Horror", "4.95", "2000-12-06",
         "An anthology of horror stories about roaches, centipedes, scorpions and other insects."),
    Book("bk109", "Paradox Lost", "Kress, Peter", "Science Fiction", "6.95", "2000-11-02",
         "After an inadvertant trip through a Heisenberg Uncertainty Device, James Salway discovers the problems of being quantum."),
    Book("bk110", "Microsoft .NET: The Programming Bible", "O'Brien, Tim", "Computer", "36.95", "2000-12-09",
         "Microsoft's .NET initiative is explored in detail in this deep programmer's reference."),
    Book("bk111", "MSXML3: A Comprehensive Guide", "O'Brien, Tim", "Computer", "36.95", "2000-12-01",
         "The Microsoft MSXML3 parser is covered in detail, with attention to XML DOM interfaces."),
    Book("bk112", "Visual Studio 7: A Comprehensive Guide", "Galos, Mike", "Computer", "49.95", "2001-04-16",
         "Microsoft Visual Studio 7 is explored in depth, looking at how Visual Basic, Visual C++, C# and ASP+ are integrated."),
)

_REQUIRED_FIELDS = ("id", "title", "author", "genre", "price", "publish_date")


class Catalog:
    """In-memory record source keyed by book id."""

    def __init__(self, books: Iterable[Book] = DEFAULT_BOOKS) -> None:
        self._books: dict[str, Book] = {}
        for book in books:
            self._books[book.id] = book

    @classmethod
    def from_file(cls, path: Path) -> "Catalog":
        """Load catalog from a JSON list of book objects.

        Args:
            path: JSON file path

        Returns:
            Catalog with the records in file order

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file is not a list of valid records
        """
        if not path.exists():
            raise FileNotFoundError(f"Catalog file not found: {path}")

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Catalog file is not valid JSON: {e}") from e

        if not isinstance(data, list):
            raise ValueError("Catalog must be a list of books")

        books = [_parse_book(item, index) for index, item in enumerate(data)]
        logger.info(f"Loaded {len(books)} books from {path}")
        return cls(books)

    def ids(self) -> list[str]:
        """Book ids in insertion order."""
        return list(self._books)

    def __len__(self) -> int:
        return len(self._books)

    def __contains__(self, book_id: object) -> bool:
        return book_id in self._books

    async def lookup(self, book_id: str) -> Book | None:
        return self._books.get(book_id)


def list_book_ids(catalog: Catalog, size: int | None = None) -> list[str]:
    """Domain of book ids to prerender.

    Args:
        catalog: Source of known ids
        size: If set, repeat the ids cyclically up to this many entries

    Returns:
        Ordered list of ids, possibly with repeats
    """
    book_ids = catalog.ids()
    if size is not None:
        book_ids = cycle_values(book_ids, size)
    return book_ids


def _parse_book(item: object, index: int) -> Book:
    if not isinstance(item, Mapping):
        raise ValueError(f"Catalog entry {index} must be an object")

    values: dict[str, str] = {}
    for name in (*_REQUIRED_FIELDS, "description"):
        value = item.get(name)
        if value is None and name == "description":
            value = ""
        if not isinstance(value, str):
            raise ValueError(f"Catalog entry {index}: {name} must be a string")
        values[name] = value

    return Book(**values)
