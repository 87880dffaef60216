"""
Mina blockchain MCP server.

Exposes Blockberry zkApp transaction lookups as MCP tools over stdio.
"""

__version__ = "1.0.0"
