"""Base MCP client for talking to a tabular model server over stdio."""

import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

from ..errors import ServerConnectionError, ToolCallError

logger = logging.getLogger(__name__)


class MCPClient:
    """Async client for an MCP server reached via stdio transport."""

    def __init__(self, server_command: list[str], env: dict[str, str] | None = None):
        """
        Args:
            server_command: Command that starts the MCP server, e.g.
                           ["python", "-m", "tabular_mcp_server"]
            env: Optional environment variables for the server process.
        """
        if not server_command:
            raise ValueError("server_command must not be empty")
        self.server_params = StdioServerParameters(
            command=server_command[0],
            args=server_command[1:],
            env=env,
        )
        self.session: ClientSession | None = None

    @asynccontextmanager
    async def connect(self):
        """Start the server process and open an MCP session.

        Only failures while starting the session are reported as
        ServerConnectionError. Exceptions raised inside the ``async with``
        body propagate unchanged, and the process is always shut down.

        Usage::

            async with MCPClient(cmd).connect() as client:
                result = await client.call_tool("list_databases")
        """
        async with AsyncExitStack() as stack:
            try:
                read, write = await stack.enter_async_context(stdio_client(self.server_params))
                session = await stack.enter_async_context(ClientSession(read, write))
                await session.initialize()
            except Exception as e:
                raise ServerConnectionError(f"Failed to connect to MCP server: {e}") from e

            self.session = session
            logger.info("Connected to MCP server")
            try:
                yield self
            finally:
                self.session = None
                logger.debug("MCP session closed")

    async def call_tool(self, tool_name: str, arguments: dict | None = None) -> dict | list | None:
        """Invoke an MCP tool and return its parsed JSON payload.

        Returns None when the tool produced no text content.

        Raises:
            ToolCallError: The call failed, the server flagged an error, or
                the payload is not valid JSON.
        """
        if not self.session:
            raise RuntimeError("Not connected to MCP server. Use `async with client.connect():`")

        logger.debug(f"Calling tool: {tool_name}")

        try:
            result = await self.session.call_tool(tool_name, arguments=arguments or {})
        except Exception as e:
            raise ToolCallError(f"Tool call '{tool_name}' failed: {e}") from e

        texts = [content.text for content in result.content if content.type == "text"]

        if getattr(result, "isError", False):
            detail = texts[0] if texts else "no details"
            raise ToolCallError(f"Tool '{tool_name}' returned an error: {detail}")

        if not texts:
            return None
        try:
            return json.loads(texts[0])
        except json.JSONDecodeError as e:
            raise ToolCallError(f"Tool '{tool_name}' returned non-JSON content: {texts[0][:100]}") from e

    async def list_tools(self) -> list[dict]:
        """List all available tools on the connected server.

        Returns:
            List of dicts with 'name' and 'description' keys.
        """
        if not self.session:
            raise RuntimeError("Not connected to MCP server.")

        result = await self.session.list_tools()
        return [
            {"name": tool.name, "description": getattr(tool, "description", "")}
            for tool in result.tools
        ]
