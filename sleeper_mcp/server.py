#!/usr/bin/env python3
"""
Sleeper MCP Server

A FastMCP server that provides:
- Health endpoint (non-MCP REST endpoint) reporting player cache status
- Sleeper API tools for users, leagues, rosters, matchups, drafts,
  transactions, trending players and the NFL state
- Player tools backed by a cached, disk-persisted player catalog
- Lineup, start/sit and waiver advice built from the enriched data
- Player cache maintenance tools (status, refresh, confirm-gated clear)
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastmcp import FastMCP
from starlette.responses import JSONResponse

from . import tool_registry
from .config_manager import ConfigurationModel, get_config_manager
from .enrichment import EnrichmentJoiner
from .logging_config import setup_logging
from .player_cache import PlayerCache
from .sleeper_client import SleeperClient
from .snapshot_store import DurableSnapshotStore
from .tool_registry import SleeperContext

logger = logging.getLogger(__name__)

SERVICE_NAME = "Sleeper MCP Server"


def build_context(config: Optional[ConfigurationModel] = None) -> SleeperContext:
    """Wire the client, durable store, player cache and joiner from configuration."""
    config = config or get_config_manager().config
    client = SleeperClient(
        base_url=config.server.base_url,
        max_retries=config.retry.max_retries,
        initial_delay=config.retry.initial_delay,
        max_delay=config.retry.max_delay,
    )
    store = DurableSnapshotStore(
        directory=config.cache.directory,
        ttl_seconds=config.cache.ttl_seconds,
        players_file=config.cache.players_file,
        meta_file=config.cache.meta_file,
        version=config.cache.format_version,
    )
    cache = PlayerCache(client, store, ttl_seconds=config.cache.ttl_seconds)
    return SleeperContext(client=client, cache=cache, joiner=EnrichmentJoiner(cache, client))


def health_payload(context: SleeperContext, version: str) -> Dict[str, Any]:
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": version,
        "player_cache": context.cache.status(),
    }


def create_app(context: Optional[SleeperContext] = None) -> FastMCP:
    """Create and configure the FastMCP server application."""
    context = context or build_context()
    try:
        version = get_config_manager().config.server.version
    except Exception:
        version = "0.1.0"

    mcp = FastMCP(name=SERVICE_NAME)

    # Initialize shared resources in tool registry
    tool_registry.initialize_shared(context)

    for tool_func in tool_registry.get_all_tools():
        mcp.tool(tool_func)

    @mcp.custom_route("/health", methods=["GET"])
    async def health_check(request):
        """Health check endpoint for monitoring server status."""
        return JSONResponse(health_payload(context, version))

    return mcp


async def warm_cache(cache: PlayerCache) -> None:
    """Populate the player cache ahead of the first request; failures are only logged."""
    try:
        await cache.ensure_fresh()
        logger.info(f"Player cache warmed ({len(cache)} players)")
    except Exception as e:
        logger.warning(f"Player cache warm-up failed: {type(e).__name__}: {e}")


def create_lifespan(context: SleeperContext, warm: bool):
    """Lifespan that optionally warms the cache and always closes the HTTP client."""
    @asynccontextmanager
    async def app_lifespan(app):
        warm_task = asyncio.create_task(warm_cache(context.cache)) if warm else None
        try:
            yield  # Server running
        finally:
            if warm_task and not warm_task.done():
                warm_task.cancel()
            await context.aclose()
            logger.info("Sleeper HTTP client closed")

    return app_lifespan


async def _run_stdio(app: FastMCP, context: SleeperContext, warm: bool) -> None:
    async with create_lifespan(context, warm)(app):
        await app.run_async(transport="stdio")


def main():
    """Main entry point for the server."""
    config = get_config_manager().config
    log_file = os.getenv("SLEEPER_MCP_LOG_FILE")
    setup_logging(
        log_level=os.getenv("SLEEPER_MCP_LOG_LEVEL", "INFO").upper(),
        service_name="sleeper-mcp-server",
        version=config.server.version,
        enable_file_logging=bool(log_file),
        log_file_path=log_file,
    )

    context = build_context(config)
    app = create_app(context)
    warm = os.getenv("SLEEPER_MCP_WARM_CACHE") == "1"
    transport = os.getenv("SLEEPER_MCP_TRANSPORT", "http").lower()
    logger.info(f"Starting {SERVICE_NAME} {config.server.version} (transport={transport}, warm_cache={warm})")

    if transport == "stdio":
        asyncio.run(_run_stdio(app, context, warm))
        return

    # Get MCP HTTP app with /mcp path prefix
    mcp_http = app.http_app(path="/mcp")
    original_mcp_lifespan = mcp_http.router.lifespan_context
    app_lifespan_fn = create_lifespan(context, warm)

    @asynccontextmanager
    async def combined_lifespan(app_instance):
        async with app_lifespan_fn(app_instance):
            async with original_mcp_lifespan(app_instance):
                yield

    mcp_http.router.lifespan_context = combined_lifespan

    import uvicorn
    uvicorn.run(mcp_http, host=config.server.host, port=config.server.port, log_config=None)


if __name__ == "__main__":
    main()
