"""Wiring of page routes, artifact store and status policy from configuration."""

import logging
from dataclasses import dataclass

from bookstage.books import Catalog, book_route
from bookstage.config import Config
from bookstage.core.boundary import StatusPolicy
from bookstage.core.pages import PageRoute
from bookstage.core.store import FileArtifactStore

logger = logging.getLogger(__name__)


@dataclass
class Site:
    """Everything the generator and dispatcher share."""

    routes: list[PageRoute]
    store: FileArtifactStore
    policy: StatusPolicy

    @classmethod
    def from_config(cls, config: Config, *, catalog: Catalog | None = None) -> "Site":
        """Build the site described by a configuration.

        Args:
            config: Application configuration
            catalog: Record source to use instead of the configured one

        Raises:
            FileNotFoundError: If the configured catalog file doesn't exist
            ValueError: If the catalog file is invalid
        """
        if catalog is None:
            if config.catalog.path is not None:
                catalog = Catalog.from_file(config.catalog.path)
            else:
                catalog = Catalog()

        routes = [book_route(catalog, domain_size=config.generate.domain_size)]
        policy = StatusPolicy(server_error=config.errors.server_error_status)
        return cls(routes=routes, store=FileArtifactStore(config.output.out_dir), policy=policy)
