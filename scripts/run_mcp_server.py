"""
Entry point for running the MCP server.

Usage:
    uv run python scripts/run_mcp_server.py
"""
from ragquery.mcp.server import create_server

if __name__ == "__main__":
    create_server().run()
