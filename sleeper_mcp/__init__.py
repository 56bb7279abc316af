"""
Sleeper MCP Server Package

A FastMCP server exposing the Sleeper fantasy football API, backed by a
cached player catalog and roster/matchup/trending enrichment.
"""

from .server import create_app, main

__version__ = "0.1.0"
__all__ = ["create_app", "main"]
