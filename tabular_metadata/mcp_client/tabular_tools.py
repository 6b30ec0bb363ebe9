"""High-level wrappers around the tabular model server's MCP tools.

The server exposes a connected Analysis Services / Power BI instance: it
accepts a connection string, lists the databases visible to the caller, and
returns a database's TMSL definition as JSON.
"""

import logging
from contextlib import asynccontextmanager

from .client import MCPClient
from ..errors import ToolCallError
from ..parsers.bim_parser import unwrap_database

logger = logging.getLogger(__name__)

# Tabular server MCP tool name mapping.
# If the server renames tools, update only this dict.
TOOL_NAMES = {
    "connect": "connect",
    "databases": "list_databases",
    "definition": "get_database_definition",
    "disconnect": "disconnect",
}


class TabularServerClient:
    """High-level async client for a tabular model MCP server."""

    def __init__(self, client: MCPClient):
        self.client = client

    async def connect(self, connection_string: str) -> None:
        """Open a server session for a connection string or bare server name."""
        logger.info("Opening tabular server session")
        await self.client.call_tool(TOOL_NAMES["connect"], {"connectionString": connection_string})

    async def disconnect(self) -> None:
        await self.client.call_tool(TOOL_NAMES["disconnect"])
        logger.info("Closed tabular server session")

    @asynccontextmanager
    async def session(self, connection_string: str):
        """Scoped server session, always disconnected on exit.

        A failed disconnect is logged and dropped when the body already
        raised, so the body's exception reaches the caller unchanged.

        Usage::

            async with server.session(cs) as connection:
                ...
        """
        await self.connect(connection_string)
        try:
            yield self
        except BaseException:
            # the body's error wins over a failed disconnect
            try:
                await self.disconnect()
            except ToolCallError as e:
                logger.warning(f"Disconnect failed after an earlier error: {e}")
            raise
        await self.disconnect()

    async def list_databases(self) -> list[str]:
        """Names of the databases visible on the connected server.

        The server may answer with plain names or with records carrying a
        ``name`` / ``Name`` key.
        """
        result = await self.client.call_tool(TOOL_NAMES["databases"])
        raw = result.get("databases", []) if isinstance(result, dict) else (result or [])

        names = []
        for d in raw:
            if isinstance(d, str):
                names.append(d)
            elif isinstance(d, dict):
                names.append(d.get("name", d.get("Name", "")))
        return names

    async def get_database_definition(self, database_name: str) -> dict:
        """Return the TMSL database object for ``database_name``."""
        result = await self.client.call_tool(TOOL_NAMES["definition"], {"database": database_name})
        return unwrap_database(result or {})

    async def find_database_by_name(self, database_name: str) -> dict | None:
        """Exact-name lookup. None when the database is missing or not visible."""
        if database_name not in await self.list_databases():
            return None
        return await self.get_database_definition(database_name)
