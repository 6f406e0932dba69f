"""
HTTP API for the interactive letter.

Runs a Starlette/Uvicorn server in a background thread with its own asyncio
event loop, so the MCP stdio transport on the main thread keeps running.

Routes:
- GET  /api/health                               - Health and cache info
- GET  /api/questions/home/{language}            - Root node
- GET  /api/questions/all/{language}             - Every node for a language
- GET  /api/questions/{question_id}/{language}   - One node
- POST /api/questions/navigate                   - Follow an option
- GET  /api/content/languages                    - Supported languages
- GET  /api/content/letter/{question_id}/{language} - Letter for a node
- POST /api/content/phone                        - Record a phone number
- GET  /api/content/stats                        - Identification count
- POST /api/cache/invalidate                     - Drop cached content
- POST /api/auth/login                           - Admin login
- GET  /api/auth/validate                        - Check a bearer token
"""

import asyncio
import logging
import threading
import time
from datetime import datetime
from typing import Any, Optional

import uvicorn
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from interactive_letter.content import GraphResolver, InvalidSelection, NavigationResolver, NotFound
from interactive_letter.models import ContentNode
from interactive_letter.session import IdentificationLog

from .auth import TokenManager, bearer_token

logger = logging.getLogger("interactive-letter.server")


# Global server state
_server_thread: Optional[threading.Thread] = None
_server_instance: Optional["ContentServer"] = None
_stop_event: Optional[threading.Event] = None


def node_json(node: Optional[ContentNode]) -> Optional[dict[str, Any]]:
    """Serialize a node with camelCase keys plus its active choice set."""
    if node is None:
        return None
    data = node.model_dump(mode="json", by_alias=True)
    choice = node.active_choice
    data["activeChoice"] = choice.model_dump(mode="json", by_alias=True) if choice else None
    return data


async def _json_body(request: Request) -> dict[str, Any]:
    """Parse a JSON object body; an empty body is an empty object."""
    raw = await request.body()
    if not raw.strip():
        return {}
    body = await request.json()
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return body


class ContentServer:
    """
    Content HTTP server running in a background thread.

    Attributes:
        resolver: Graph resolver (owns the shared cache)
        navigator: Navigation resolver
        identification_log: Phone number capture
        token_manager: Admin token manager
        host: Server bind address
        port: Server port
        start_time: Server start timestamp
    """

    def __init__(
        self,
        resolver: GraphResolver,
        navigator: NavigationResolver,
        identification_log: IdentificationLog,
        token_manager: TokenManager,
        host: str = "0.0.0.0",
        port: int = 5000,
    ) -> None:
        self.resolver = resolver
        self.navigator = navigator
        self.identification_log = identification_log
        self.token_manager = token_manager
        self.host = host
        self.port = port
        self.start_time = datetime.now()

        # Event loop reference (set when server thread starts)
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        self.app = self._build_app()
        logger.info(f"ContentServer initialized on {host}:{port}")

    def _build_app(self) -> Starlette:
        routes = [
            Route("/api/health", self.get_health, methods=["GET"]),
            Route("/api/questions/home/{language}", self.get_home_question, methods=["GET"]),
            Route("/api/questions/all/{language}", self.get_all_questions, methods=["GET"]),
            Route("/api/questions/navigate", self.post_navigate, methods=["POST"]),
            Route("/api/questions/{question_id}/{language}", self.get_question, methods=["GET"]),
            Route("/api/content/languages", self.get_languages, methods=["GET"]),
            Route("/api/content/letter/{question_id}/{language}", self.get_letter, methods=["GET"]),
            Route("/api/content/phone", self.post_phone, methods=["POST"]),
            Route("/api/content/stats", self.get_stats, methods=["GET"]),
            Route("/api/cache/invalidate", self.post_invalidate_cache, methods=["POST"]),
            Route("/api/auth/login", self.post_login, methods=["POST"]),
            Route("/api/auth/validate", self.get_validate, methods=["GET"]),
        ]
        middleware = [
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["GET", "POST", "PUT", "DELETE"],
                allow_headers=["Content-Type", "Authorization"],
            ),
        ]
        return Starlette(
            debug=False,
            routes=routes,
            middleware=middleware,
            exception_handlers={404: self._not_found, 500: self._server_error},
        )

    async def _not_found(self, request: Request, exc: HTTPException) -> Response:
        return JSONResponse({"error": "Route not found", "path": request.url.path}, status_code=404)

    async def _server_error(self, request: Request, exc: Exception) -> Response:
        logger.error(f"Unhandled error on {request.url.path}: {exc}")
        return JSONResponse(
            {"error": "Something went wrong!", "message": str(exc)},
            status_code=500,
        )

    async def get_health(self, request: Request) -> Response:
        cache = self.resolver.cache
        return JSONResponse({
            "status": "OK",
            "message": "Interactive Letter API is running",
            "timestamp": datetime.now().isoformat(),
            "uptime_seconds": (datetime.now() - self.start_time).total_seconds(),
            "cache_size": cache.size,
            "cache_ttl_seconds": cache.ttl,
            "source": self.resolver.source.name if self.resolver.source else None,
        })

    async def get_home_question(self, request: Request) -> Response:
        language = request.path_params["language"]
        try:
            node = await self.resolver.resolve(self.resolver.root_node_id, language)
        except NotFound:
            return JSONResponse(
                {"error": "Home question not found", "language": language},
                status_code=404,
            )
        return JSONResponse({"success": True, "data": node_json(node), "language": language})

    async def get_question(self, request: Request) -> Response:
        question_id = request.path_params["question_id"]
        language = request.path_params["language"]
        try:
            node = await self.resolver.resolve(question_id, language)
        except NotFound:
            return JSONResponse(
                {"error": "Question not found", "questionId": question_id, "language": language},
                status_code=404,
            )
        return JSONResponse({
            "success": True,
            "data": node_json(node),
            "questionId": question_id,
            "language": language,
        })

    async def get_all_questions(self, request: Request) -> Response:
        language = request.path_params["language"]
        nodes = await self.resolver.resolve_all(language)
        return JSONResponse({
            "success": True,
            "data": {node_id: node_json(node) for node_id, node in nodes.items()},
            "language": language,
            "count": len(nodes),
        })

    async def post_navigate(self, request: Request) -> Response:
        """
        Follow an option from a node.

        Body: {"fromQuestion": str, "selectedOption": str, "language": str}
        """
        try:
            body = await _json_body(request)
        except ValueError as e:
            return JSONResponse({"error": f"Invalid request: {e}"}, status_code=400)

        from_question = body.get("fromQuestion")
        selected_option = body.get("selectedOption")
        language = body.get("language")
        fields = (from_question, selected_option, language)
        if not all(isinstance(value, str) and value.strip() for value in fields):
            return JSONResponse(
                {
                    "error": "Missing required fields",
                    "required": ["fromQuestion", "selectedOption", "language"],
                },
                status_code=400,
            )

        try:
            result = await self.navigator.navigate_from(from_question, selected_option, language)
        except NotFound:
            return JSONResponse(
                {"error": "Current question not found", "fromQuestion": from_question},
                status_code=404,
            )
        except InvalidSelection:
            return JSONResponse(
                {
                    "error": "Invalid option selected or no next question available",
                    "selectedOption": selected_option,
                },
                status_code=400,
            )

        return JSONResponse({
            "success": True,
            "data": {
                "fromQuestion": result.from_node_id,
                "selectedOption": result.selected_option.model_dump(mode="json", by_alias=True),
                "nextQuestion": node_json(result.next_node),
                "nextQuestionId": result.next_node_id,
            },
            "language": language,
        })

    async def get_languages(self, request: Request) -> Response:
        languages = [lang.model_dump(mode="json", by_alias=True) for lang in self.resolver.languages]
        return JSONResponse({"success": True, "data": languages, "count": len(languages)})

    async def get_letter(self, request: Request) -> Response:
        question_id = request.path_params["question_id"]
        language = request.path_params["language"]
        try:
            letter = await self.resolver.resolve_letter(question_id, language)
        except NotFound:
            return JSONResponse(
                {"success": False, "message": "Letter content not found."},
                status_code=404,
            )
        return JSONResponse({
            "success": True,
            "data": letter.model_dump(mode="json", by_alias=True),
            "language": language,
        })

    async def post_phone(self, request: Request) -> Response:
        try:
            body = await _json_body(request)
        except ValueError as e:
            return JSONResponse({"success": False, "message": f"Invalid request: {e}"}, status_code=400)

        timestamp = None
        if body.get("timestamp"):
            try:
                timestamp = datetime.fromisoformat(str(body["timestamp"]))
            except ValueError:
                logger.debug(f"Ignoring unparsable timestamp {body['timestamp']!r}")

        try:
            self.identification_log.record(body.get("phoneNumber"), timestamp=timestamp)
        except ValueError as e:
            return JSONResponse({"success": False, "message": str(e)}, status_code=400)

        return JSONResponse({"success": True, "message": "Phone number stored successfully."})

    async def get_stats(self, request: Request) -> Response:
        return JSONResponse({
            "success": True,
            "data": {"totalPhoneNumbers": self.identification_log.count},
        })

    async def post_invalidate_cache(self, request: Request) -> Response:
        """
        Invalidate cached content, e.g. from a spreadsheet edit webhook.

        Body: {"sheet_name": str}. The questions and letters sheet names drop
        the entries built from that sheet; any other name drops keys
        containing it (lower-cased). No sheet_name clears everything.
        """
        try:
            body = await _json_body(request)
        except ValueError as e:
            return JSONResponse({"error": f"Invalid request: {e}"}, status_code=400)

        sheet_name = body.get("sheet_name")
        removed = self.resolver.invalidate_sheet(str(sheet_name) if sheet_name else None)

        return JSONResponse({
            "message": "Cache invalidated successfully",
            "removed": removed,
            "remaining_cache_size": self.resolver.cache.size,
        })

    async def post_login(self, request: Request) -> Response:
        try:
            body = await _json_body(request)
        except ValueError as e:
            return JSONResponse({"error": f"Invalid request: {e}"}, status_code=400)

        username = str(body.get("username") or "")
        token = self.token_manager.login(username, str(body.get("password") or ""))
        if token is None:
            return JSONResponse({"error": "Invalid credentials"}, status_code=401)

        return JSONResponse({
            "token": token,
            "user": {"username": username, "role": "admin"},
            "message": "Login successful",
        })

    async def get_validate(self, request: Request) -> Response:
        token = bearer_token(request.headers.get("Authorization"))
        if not token:
            return JSONResponse({"error": "Access token required"}, status_code=401)

        info = self.token_manager.validate_token(token)
        if info is None:
            return JSONResponse({"error": "Invalid or expired token"}, status_code=403)

        return JSONResponse({
            "valid": True,
            "user": {"username": info.username, "role": info.role},
        })


def _run_server(server: ContentServer, stop_event: threading.Event) -> None:
    """
    Run the Uvicorn server in a background thread until stop_event is set.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    server._loop = loop

    config = uvicorn.Config(
        server.app,
        host=server.host,
        port=server.port,
        log_level="info",
        loop="asyncio",
    )
    uvicorn_server = uvicorn.Server(config)

    async def shutdown_monitor() -> None:
        while not stop_event.is_set():
            await asyncio.sleep(0.1)
        uvicorn_server.should_exit = True

    try:
        loop.run_until_complete(asyncio.gather(
            uvicorn_server.serve(),
            shutdown_monitor(),
        ))
    except Exception as e:
        logger.error(f"Server thread error: {e}")
    finally:
        loop.close()
        logger.info("Server thread exited")


def start_content_server(server: ContentServer) -> ContentServer:
    """
    Start the content HTTP server in a background daemon thread.

    Raises:
        RuntimeError: If a server is already running
    """
    global _server_thread, _server_instance, _stop_event

    if _server_thread is not None and _server_thread.is_alive():
        raise RuntimeError("Content server is already running")

    stop_event = threading.Event()
    thread = threading.Thread(
        target=_run_server,
        args=(server, stop_event),
        daemon=True,
        name="ContentHTTPServer",
    )
    thread.start()

    _server_thread = thread
    _server_instance = server
    _stop_event = stop_event

    # Give uvicorn a moment to bind
    time.sleep(0.5)

    logger.info(f"Content server started on http://{server.host}:{server.port}")
    logger.info(f"Health check: http://{server.host}:{server.port}/api/health")
    return server


def stop_content_server() -> None:
    """
    Stop the content HTTP server, waiting up to 5 seconds for the thread.

    Raises:
        RuntimeError: If the server is not running
    """
    global _server_thread, _server_instance, _stop_event

    if _server_thread is None or not _server_thread.is_alive():
        raise RuntimeError("Content server is not running")

    logger.info("Stopping content server...")
    if _stop_event:
        _stop_event.set()

    _server_thread.join(timeout=5.0)
    if _server_thread.is_alive():
        logger.warning("Server thread did not exit cleanly")
    else:
        logger.info("Content server stopped")

    _server_thread = None
    _server_instance = None
    _stop_event = None


def get_server_instance() -> Optional[ContentServer]:
    return _server_instance


__all__ = [
    "ContentServer",
    "node_json",
    "start_content_server",
    "stop_content_server",
    "get_server_instance",
]
