"""
Sales Arsenal MCP Server

Exposes the sales arsenal search, lead CRUD, download links and generic table
access as MCP tools for orchestration clients (n8n, Claude Desktop, etc.).
"""

__version__ = "2.1.0"
