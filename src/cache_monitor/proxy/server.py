"""
Status-server proxy.

A small aiohttp web application that fetches the headers of a URL on behalf
of clients that cannot request it directly, e.g. browsers blocked by
cross-origin restrictions.

GET /api/check?url=<url>
- 200 {"headers": {...}, "responseTime": n} on success
- 200 {"error": "...", "responseTime": n} on transport failure
- 400 {"error": "..."} when the url parameter is missing or invalid
"""

import logging

from aiohttp import web

from cache_monitor.config.constants import DEFAULT_FETCH_TIMEOUT_MS
from cache_monitor.contracts import HeaderFetcher
from cache_monitor.errors import TransportError
from cache_monitor.validation import is_valid_url

# Module logger
logger = logging.getLogger(__name__)

CHECK_PATH = "/api/check"

FETCHER_KEY = web.AppKey("fetcher", HeaderFetcher)
TIMEOUT_KEY = web.AppKey("fetch_timeout_ms", int)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


async def handle_check(request: web.Request) -> web.Response:
    """
    Fetches the headers of the URL given in the 'url' query parameter.

    Args:
        request: The incoming HTTP request.

    Returns:
        A JSON response following the proxy contract.
    """
    url = request.query.get("url")
    if not url:
        return web.json_response(
            {"error": "URL parameter is required"}, status=400, headers=CORS_HEADERS
        )
    if not is_valid_url(url):
        return web.json_response({"error": "Invalid URL"}, status=400, headers=CORS_HEADERS)

    fetcher = request.app[FETCHER_KEY]
    try:
        response = await fetcher.fetch(url, request.app[TIMEOUT_KEY])
    except TransportError as e:
        logger.info(f"Proxy check of {url} failed: {e.message}")
        return web.json_response(
            {"error": e.message, "responseTime": e.response_time_ms}, headers=CORS_HEADERS
        )

    return web.json_response(
        {"headers": response.headers, "responseTime": response.response_time_ms},
        headers=CORS_HEADERS,
    )


async def handle_preflight(request: web.Request) -> web.Response:
    return web.Response(headers=CORS_HEADERS)


def create_app(
    fetcher: HeaderFetcher, fetch_timeout_ms: int = DEFAULT_FETCH_TIMEOUT_MS
) -> web.Application:
    """
    Creates the proxy web application.

    Args:
        fetcher: The fetcher used to request the target URLs.
        fetch_timeout_ms: Timeout applied to every proxied request, in milliseconds.

    Returns:
        Configured aiohttp web Application.
    """
    app = web.Application()
    app[FETCHER_KEY] = fetcher
    app[TIMEOUT_KEY] = fetch_timeout_ms
    app.add_routes(
        [
            web.get(CHECK_PATH, handle_check),
            web.options(CHECK_PATH, handle_preflight),
        ]
    )
    return app


async def start_proxy_server(app: web.Application, host: str, port: int) -> web.AppRunner:
    """
    Starts serving the application in the running event loop.

    Returns:
        web.AppRunner: The runner; call its cleanup() method to stop serving.
    """
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=host, port=port)
    await site.start()
    logger.info(f"Header proxy listening on http://{host}:{port}{CHECK_PATH}")
    return runner
