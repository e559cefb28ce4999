"""Redmine MCP Server - Redmine issue tracking tools for MCP hosts."""

__version__ = "1.0.0"
