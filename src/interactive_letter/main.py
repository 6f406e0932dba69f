"""
Interactive Letter MCP Server
Walk a multi-language branching questionnaire backed by Google Sheets,
with an HTTP API for the web client.
"""

import logging
from datetime import timedelta
from typing import Annotated

from dotenv import load_dotenv
from fastmcp import FastMCP
from pydantic import Field

from .config import Settings
from .content import (
    ContentCache,
    GraphResolver,
    InvalidSelection,
    NavigationResolver,
    NotFound,
    StaticFallbackTable,
    warn_on_uncovered_root,
)
from .models import ContentNode
from .server import ContentServer, TokenManager, start_content_server
from .session import (
    IdentificationLog,
    InvalidTransition,
    SessionRegistry,
    ViewKind,
    ViewState,
)
from .sources import GoogleSheetsSource

logger = logging.getLogger("interactive-letter")

logging.basicConfig(
    level=logging.DEBUG,
    )

if not load_dotenv():
    logger.warning("❌ .env file invalid or not found! Falling back to process environment.")

settings = Settings.from_env()
logger.debug(f"📄 Questions sheet: {settings.questions_sheet}, letters sheet: {settings.letters_sheet}")

content_cache = ContentCache(ttl=settings.cache_ttl)
static_table = StaticFallbackTable.default()
warn_on_uncovered_root(static_table, settings.root_node_id)
source = GoogleSheetsSource.from_settings(settings)
resolver = GraphResolver(
    source=source,
    static_table=static_table,
    cache=content_cache,
    default_language=settings.default_language,
    root_node_id=settings.root_node_id,
    questions_sheet=settings.questions_sheet,
    letters_sheet=settings.letters_sheet,
)
navigator = NavigationResolver(resolver)
logger.debug(f"✅ Resolver initialized (source: {source.name if source else 'static only'})")

session_registry = SessionRegistry(root_node_id=settings.root_node_id)
identification_log = IdentificationLog()
token_manager = TokenManager(
    admin_username=settings.admin_username,
    admin_password=settings.admin_password,
    token_ttl=timedelta(hours=settings.token_ttl_hours),
)

mcp = FastMCP(
    name="interactive-letter"
)

logger.debug("✅ Server initialized, registering tools")


# ----------------------------------------------------------------------
# Formatting helpers
# ----------------------------------------------------------------------

def _format_node(node: ContentNode) -> str:
    """Render a node as markdown for tool output."""
    lines = [f"# {node.title or node.id}"]
    if node.body:
        lines.extend(["", node.body])
    if node.has_supplement and node.supplement_body:
        lines.extend(["", f"✉️ {node.supplement_body}"])

    choice = node.active_choice
    if choice is None:
        lines.extend(["", "_No further options._"])
    else:
        lines.append("")
        if choice.kind == "secondary" and choice.prompt:
            lines.extend([f"**{choice.prompt}**", ""])
        for option in choice.options:
            lines.append(f"- `{option.id}`: {option.label}")
    return "\n".join(lines)


def _format_view(state: ViewState, node: ContentNode | None = None) -> str:
    if state.kind == ViewKind.ENTRY:
        return "📨 Waiting for identification. Use `identify` with a phone number."
    if state.kind == ViewKind.LANGUAGE_SELECT:
        codes = ", ".join(f"`{lang.code}` ({lang.native_name})" for lang in resolver.languages)
        return f"🌐 Choose a language: {codes}"
    trail = " → ".join([*state.history, state.current or ""])
    header = f"📍 {trail} [{state.language}]"
    return f"{header}\n\n{_format_node(node)}" if node is not None else header


# ----------------------------------------------------------------------
# Tool logic (kept free of MCP plumbing for testing)
# ----------------------------------------------------------------------

def _start_session_logic(registry: SessionRegistry) -> str:
    session = registry.create()
    return f"🆕 Session `{session.session_id}` started.\n\n{_format_view(session.state)}"


def _identify_logic(
    registry: SessionRegistry,
    log: IdentificationLog,
    session_id: str,
    phone_number: str,
) -> str:
    try:
        session = registry.get(session_id)
        session.machine.identify(session.state)
        record = log.record(phone_number)
        state = session.identify(record.phone_number)
    except KeyError as e:
        return f"❌ {e.args[0]}"
    except (ValueError, InvalidTransition) as e:
        return f"❌ {e}"
    return _format_view(state)


async def _select_language_logic(
    registry: SessionRegistry,
    graph: GraphResolver,
    session_id: str,
    language: str,
) -> str:
    codes = [lang.code for lang in graph.languages]
    if language not in codes:
        return f"❌ Unsupported language '{language}'. Choose one of: {', '.join(codes)}"
    try:
        session = registry.get(session_id)
        candidate = session.machine.choose_language(session.state, language)
        node = await graph.resolve(candidate.current, language)
    except KeyError as e:
        return f"❌ {e.args[0]}"
    except InvalidTransition as e:
        return f"❌ {e}"
    except NotFound as e:
        return f"❌ {e}. Please try again."
    state = session.choose_language(language)
    return _format_view(state, node)


async def _show_current_logic(registry: SessionRegistry, graph: GraphResolver, session_id: str) -> str:
    try:
        session = registry.get(session_id)
    except KeyError as e:
        return f"❌ {e.args[0]}"
    state = session.state
    if state.kind != ViewKind.NODE:
        return _format_view(state)
    try:
        node = await graph.resolve(state.current, state.language)
    except NotFound as e:
        return f"❌ {e}. Try again, or use `go_back`."
    return _format_view(state, node)


async def _choose_option_logic(
    registry: SessionRegistry,
    nav: NavigationResolver,
    session_id: str,
    option_id: str,
) -> str:
    try:
        session = registry.get(session_id)
    except KeyError as e:
        return f"❌ {e.args[0]}"
    state = session.state
    if state.kind != ViewKind.NODE:
        return f"❌ No question is being shown yet.\n\n{_format_view(state)}"

    try:
        result = await nav.navigate_from(state.current, option_id, state.language)
    except (NotFound, InvalidSelection) as e:
        return f"❌ {e}"

    if result.next_node is None:
        # Stay on the current node rather than showing nothing
        return (
            f"⚠️ '{result.next_node_id}' is not available right now; "
            f"staying on '{state.current}'."
        )

    new_state = session.advance(result.next_node_id)
    return _format_view(new_state, result.next_node)


async def _go_back_logic(registry: SessionRegistry, graph: GraphResolver, session_id: str) -> str:
    try:
        session = registry.get(session_id)
        candidate = session.machine.go_back(session.state)
        node = await graph.resolve(candidate.current, candidate.language)
    except KeyError as e:
        return f"❌ {e.args[0]}"
    except InvalidTransition as e:
        return f"❌ {e}"
    except NotFound as e:
        return f"❌ {e}. Staying on the current question."
    state = session.go_back()
    return _format_view(state, node)


async def _return_home_logic(registry: SessionRegistry, graph: GraphResolver, session_id: str) -> str:
    try:
        session = registry.get(session_id)
        candidate = session.machine.return_to_root(session.state)
        node = await graph.resolve(candidate.current, candidate.language)
    except KeyError as e:
        return f"❌ {e.args[0]}"
    except InvalidTransition as e:
        return f"❌ {e}"
    except NotFound as e:
        return f"❌ {e}. Staying on the current question."
    state = session.return_to_root()
    return _format_view(state, node)


# ----------------------------------------------------------------------
# Tools
# ----------------------------------------------------------------------

# Session tools
@mcp.tool
def start_session() -> str:
    """Start a new questionnaire session and return its id."""
    return _start_session_logic(session_registry)


@mcp.tool
def identify(
    session_id: Annotated[str, Field(description="Session id from start_session")],
    phone_number: Annotated[str, Field(description="Visitor phone number")],
) -> str:
    """Record the visitor's phone number and move on to language selection."""
    return _identify_logic(session_registry, identification_log, session_id, phone_number)


@mcp.tool
async def select_language(
    session_id: Annotated[str, Field(description="Session id from start_session")],
    language: Annotated[str, Field(description="Language code, e.g. 'en', 'ar', 'fa'")],
) -> str:
    """Choose the reading language and open the first question."""
    return await _select_language_logic(session_registry, resolver, session_id, language)


@mcp.tool
async def show_current(
    session_id: Annotated[str, Field(description="Session id from start_session")],
) -> str:
    """Show the session's current screen."""
    return await _show_current_logic(session_registry, resolver, session_id)


@mcp.tool
async def choose_option(
    session_id: Annotated[str, Field(description="Session id from start_session")],
    option_id: Annotated[str, Field(description="Id of the option to follow")],
) -> str:
    """Follow one of the current question's options."""
    return await _choose_option_logic(session_registry, navigator, session_id, option_id)


@mcp.tool
async def go_back(
    session_id: Annotated[str, Field(description="Session id from start_session")],
) -> str:
    """Return to the previously visited question."""
    return await _go_back_logic(session_registry, resolver, session_id)


@mcp.tool
async def return_home(
    session_id: Annotated[str, Field(description="Session id from start_session")],
) -> str:
    """Jump back to the first question, discarding the visit history."""
    return await _return_home_logic(session_registry, resolver, session_id)


@mcp.tool
def end_session(
    session_id: Annotated[str, Field(description="Session id from start_session")],
) -> str:
    """End a questionnaire session."""
    if session_registry.end(session_id):
        return f"👋 Session `{session_id}` ended."
    return f"❌ Unknown session '{session_id}'"


# Content tools
@mcp.tool
async def get_question(
    question_id: Annotated[str, Field(description="Question (node) id, e.g. 'home'")],
    language: Annotated[str, Field(description="Language code")] = "en",
) -> str:
    """Show a question without touching any session."""
    try:
        node = await resolver.resolve(question_id, language)
    except NotFound as e:
        return f"❌ {e}"
    return _format_node(node)


@mcp.tool
def list_languages() -> str:
    """List the languages the questionnaire is available in."""
    return "\n".join(
        f"- `{lang.code}`: {lang.name} ({lang.native_name})" for lang in resolver.languages
    )


@mcp.tool
def invalidate_cache(
    pattern: Annotated[str | None, Field(description="Substring of cache keys to drop; omit to clear all")] = None,
) -> str:
    """Drop cached content so the next request re-reads the spreadsheet."""
    removed = resolver.invalidate(pattern)
    return f"🧹 Removed {removed} cache entries ({content_cache.size} remaining)."


@mcp.tool
def cache_stats() -> str:
    """Show content cache statistics."""
    stats = content_cache.get_stats()
    return (
        f"Entries: {stats.total_entries} (TTL {stats.ttl_seconds:.0f}s)\n"
        f"Hits: {stats.hit_count}, misses: {stats.miss_count} "
        f"(hit rate {stats.hit_rate:.0%})\n"
        f"Expired reads: {stats.expired_count}, invalidated: {stats.invalidated_count}"
    )


def main() -> None:
    """Main entry point for the interactive letter server."""
    if settings.http_enabled:
        start_content_server(ContentServer(
            resolver=resolver,
            navigator=navigator,
            identification_log=identification_log,
            token_manager=token_manager,
            host=settings.host,
            port=settings.port,
        ))
    mcp.run()

if __name__ == "__main__":
    main()
