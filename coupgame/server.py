"""HTTP server: static files from a web root and the game socket endpoint."""

from __future__ import annotations

import argparse
import html
import logging
import os
from pathlib import Path
from typing import Optional, Sequence
from urllib.parse import quote

from aiohttp import web

from coupgame import i18n
from coupgame.connections import Client, ConnectionManager, ConnectionManagerError
from coupgame.message import GameMessage, MessageType

logger = logging.getLogger(__name__)

DEFAULT_HOST = ""
DEFAULT_PORT = 8080
DEFAULT_WEB_ROOT = "web"
SHUTDOWN_TIMEOUT = 5.0
IDLE_TIMEOUT = 120.0
WELCOME_TEXT = "Welcome to Coup Game!"

MANAGER_KEY = web.AppKey("manager", ConnectionManager)
WEB_ROOT_KEY = web.AppKey("web_root", Path)


def _plain_error(status: int, text: str) -> web.Response:
    return web.Response(status=status, text=text + "\n", content_type="text/plain")


def _is_upgrade_request(request: web.Request) -> bool:
    headers = request.headers
    return (
        headers.get("Connection", "") == "Upgrade"
        and headers.get("Upgrade", "") == "websocket"
        and bool(headers.get("Sec-WebSocket-Version", ""))
        and bool(headers.get("Sec-WebSocket-Key", ""))
    )


async def handle_ws(request: web.Request) -> web.StreamResponse:
    """Upgrade the request to a socket and serve the client until it leaves."""
    if request.method != "GET":
        return _plain_error(405, "Method Not Allowed")
    if not _is_upgrade_request(request):
        return _plain_error(400, "Bad Request")

    manager = request.app[MANAGER_KEY]
    socket = web.WebSocketResponse()
    try:
        await socket.prepare(request)
    except (web.HTTPException, ConnectionError) as exc:
        logger.warning("WebSocket upgrade failed: %s", exc)
        return _plain_error(500, "Upgrade Failed")

    client = Client("", socket, manager)
    try:
        manager.add_client(client)
    except ConnectionManagerError as exc:
        logger.warning("Failed to add client: %s", exc)
        await socket.close()
        return socket

    logger.info("New WebSocket client connected: %s", client.id)
    welcome = GameMessage(
        MessageType.PLAYER_JOIN,
        {"message": WELCOME_TEXT, "clientId": client.id},
    )
    try:
        client.send_message(welcome)
    except ConnectionManagerError as exc:
        logger.warning("Failed to send welcome to %s: %s", client.id, exc)

    await client.run()
    return socket


def _directory_listing(directory: Path) -> web.Response:
    lines = [
        "<!doctype html>",
        '<meta name="viewport" content="width=device-width">',
        "<pre>",
    ]
    for entry in sorted(directory.iterdir(), key=lambda item: item.name):
        name = entry.name + ("/" if entry.is_dir() else "")
        lines.append(f'<a href="{quote(name)}">{html.escape(name)}</a>')
    lines.append("</pre>")
    return web.Response(text="\n".join(lines) + "\n", content_type="text/html")


async def _serve_static(request: web.Request) -> web.StreamResponse:
    root = request.app[WEB_ROOT_KEY]
    relative = request.match_info.get("path", "")
    target = (root / relative).resolve()
    try:
        target.relative_to(root)
    except ValueError:
        return _plain_error(404, "404 page not found")
    if not target.exists():
        return _plain_error(404, "404 page not found")

    if target.is_dir():
        if not request.path.endswith("/"):
            raise web.HTTPMovedPermanently(location=request.path + "/")
        index = target / "index.html"
        if index.is_file():
            return web.FileResponse(index)
        return _directory_listing(target)
    return web.FileResponse(target)


async def _close_clients(app: web.Application) -> None:
    logger.info("Shutdown server...")
    manager = app[MANAGER_KEY]
    for client_id in manager.connection_ids():
        try:
            manager.remove_connection(client_id)
        except ConnectionManagerError:
            pass


def create_app(
    web_root: str | os.PathLike[str] = DEFAULT_WEB_ROOT,
    manager: Optional[ConnectionManager] = None,
) -> web.Application:
    """Build the application serving web_root at / and the socket at /ws."""
    app = web.Application()
    app[MANAGER_KEY] = manager if manager is not None else ConnectionManager()
    app[WEB_ROOT_KEY] = Path(web_root).resolve()
    app.router.add_route("*", "/ws", handle_ws)
    app.router.add_get("/{path:.*}", _serve_static)
    app.on_shutdown.append(_close_clients)
    return app


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the Coup game server.")
    parser.add_argument("--host", default=DEFAULT_HOST, help="address to listen on")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to listen on")
    parser.add_argument("--web-root", default=DEFAULT_WEB_ROOT, help="directory of static files")
    parser.add_argument(
        "--locales",
        default=i18n.DEFAULT_LOCALES_PATH,
        help="directory of translation files",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Load translations and serve until interrupted."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    args = _parse_args(argv)

    try:
        i18n.init_with_locales_path(args.locales)
    except i18n.I18nError as exc:
        logger.error("Failed to initialize i18n: %s", exc)
        return 1

    app = create_app(args.web_root)
    logger.info("Server is running at http://localhost:%d", args.port)
    try:
        web.run_app(
            app,
            host=args.host or None,
            port=args.port,
            shutdown_timeout=SHUTDOWN_TIMEOUT,
            keepalive_timeout=IDLE_TIMEOUT,
            print=None,
        )
    except OSError as exc:
        logger.error("Server failed: %s", exc)
        return 1
    logger.info("Server exited gracefully")
    return 0