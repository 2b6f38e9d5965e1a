"""aiohttp server for Bookstage.

Application factory and route registration. Every GET path goes through the
route dispatcher, which serves prerendered artifacts or renders on demand.
"""

from hashlib import md5

from aiohttp import web

from bookstage.app_keys import dispatcher_key
from bookstage.config import Config
from bookstage.dispatch import RouteDispatcher
from bookstage.site import Site

SOURCE_HEADER = "X-Bookstage-Source"


async def handle_page(request: web.Request) -> web.Response:
    """Dispatch a request path and apply the resulting status to the response."""
    dispatcher = request.app[dispatcher_key]
    # Raw path keeps percent-escapes; the route template decodes them once.
    result = await dispatcher.dispatch(request.rel_url.raw_path)

    headers = {SOURCE_HEADER: result.source}
    if result.status == 200:
        etag = _compute_etag(result.body)
        if request.headers.get("If-None-Match") == etag:
            return web.Response(status=304, headers={**headers, "ETag": etag})
        headers["ETag"] = etag

    return web.Response(
        body=result.body,
        status=result.status,
        content_type="text/html",
        charset="utf-8",
        headers=headers,
    )


def create_app(config: Config, *, site: Site | None = None) -> web.Application:
    """Create aiohttp application.

    Args:
        config: Application configuration
        site: Prebuilt site (routes, store, policy). Built from config if omitted.

    Returns:
        Configured aiohttp application
    """
    app = web.Application()

    site = site or Site.from_config(config)
    dispatcher = RouteDispatcher(
        site.routes,
        site.store,
        policy=site.policy,
        persist_on_demand=config.serve.persist_on_demand,
    )

    app[dispatcher_key] = dispatcher

    app.router.add_get("/{path:.*}", handle_page)

    return app


def run_server(config: Config, *, site: Site | None = None) -> None:
    """Run the server.

    Args:
        config: Application configuration
        site: Prebuilt site shared with the generation step
    """
    app = create_app(config, site=site)
    web.run_app(app, host=config.server.host, port=config.server.port, print=None)


def _compute_etag(content: bytes) -> str:
    # First 16 hex chars are enough to detect changed documents
    content_hash = md5(content, usedforsecurity=False).hexdigest()[:16]
    return f'"{content_hash}"'
