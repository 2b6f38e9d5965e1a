"""Application keys for type-safe app configuration access."""

from aiohttp import web

from bookstage.dispatch import RouteDispatcher

dispatcher_key = web.AppKey("dispatcher", RouteDispatcher)
