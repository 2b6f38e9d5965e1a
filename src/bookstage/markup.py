"""HTML markup built from jinja2 templates.

All views go through the same environment with autoescaping enabled. Output
depends only on the context passed in, so equal input renders byte-identical
documents.
"""

from collections.abc import Sequence
from typing import Any

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape

_env = Environment(
    loader=PackageLoader("bookstage", "templates"),
    autoescape=select_autoescape(["html"]),
    undefined=StrictUndefined,
    keep_trailing_newline=True,
)


def render_template(name: str, **context: Any) -> str:
    """Render a packaged template by name."""
    return _env.get_template(name).render(**context)


def error_page(errors: Sequence[BaseException]) -> str:
    """Fallback document listing failure messages."""
    return render_template("error.html", messages=[str(e) for e in errors])


def loading_page() -> str:
    """Placeholder document for a pending render."""
    return render_template("loading.html")


def not_found_page() -> str:
    """Generic document for paths outside every route."""
    return render_template("not_found.html")
