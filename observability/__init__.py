"""Metrics for the MCP host."""
