"""
Nano Banana MCP Server

MCP server for Gemini image generation and editing, built on FastMCP with
a small synchronized session store and deterministic artifact naming.
"""

__version__ = "0.1.0"

try:
    import importlib.metadata

    __version__ = importlib.metadata.version("nano-banana-mcp")
except (importlib.metadata.PackageNotFoundError, ImportError):
    # Fallback for development mode
    pass

__all__ = ["__version__"]
