"""caamp - Central AI Agent Managed Packages.

Synchronizes MCP server entries and instruction-file blocks across the
configuration files of many AI coding agents.
"""

__version__ = "0.3.0"
