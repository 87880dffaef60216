"""
Model Context Protocol (MCP) server.

JSON-RPC 2.0 message layer, tool registry and the Mina transaction tools,
served over the stdio transport.
"""
