"""Server-wide configuration constants for the AI DM server."""

import logging
import os

SERVER_NAME = "AI DM Server"
SERVER_VERSION = "0.1.0"
MCP_SERVER_NAME = os.environ.get("AIDM_MCP_NAME", "ai-dm-mcp-server")
HOST = os.environ.get("AIDM_HOST", "127.0.0.1")
PORT = int(os.environ.get("AIDM_PORT", "8000"))

MAX_BREAKDOWN_DICE = int(os.environ.get("AIDM_MAX_BREAKDOWN_DICE", "10"))  # List each die up to this count
DEFAULT_CRIT_RANGE = 20          # Natural roll needed for a critical hit
LOG_LEVEL = os.environ.get("AIDM_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging() -> None:
    """Configure root logging for an entry point (HTTP app or MCP server)."""
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
