"""Relay MCP: parallel SSH session management with gateway tunneling."""

__version__ = "0.1.0"
