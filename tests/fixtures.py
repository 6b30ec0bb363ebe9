"""
TMSL builders and fakes shared by the test suite.

Builders return plain dicts shaped like the TMSL definitions a tabular
server returns, with defaults omitted the same way the server omits them.
"""

from contextlib import asynccontextmanager


def make_column(name: str, data_type: str = "string", **props) -> dict:
    return {"name": name, "dataType": data_type, **props}


def make_table(name: str, columns: list[dict] | None = None, **props) -> dict:
    table = {"name": name, "columns": columns or []}
    table.update(props)
    return table


def make_relationship(from_table: str, from_column: str, to_table: str, to_column: str, **props) -> dict:
    return {
        "name": props.pop("name", f"{from_table}_{to_table}"),
        "fromTable": from_table,
        "fromColumn": from_column,
        "toTable": to_table,
        "toColumn": to_column,
        **props,
    }


def make_database(
    tables: list[dict],
    relationships: list[dict] | None = None,
    roles: list[dict] | None = None,
    **model_props,
) -> dict:
    return {
        "name": "Contoso",
        "compatibilityLevel": 1567,
        "compatibilityMode": "powerBI",
        "lastProcessed": "2024-03-01T08:30:00.1234567",
        "lastUpdate": "2024-03-02T09:15:00Z",
        "version": 42,
        "model": {
            "culture": "en-US",
            "tables": tables,
            "relationships": relationships or [],
            "roles": roles or [],
            **model_props,
        },
    }


class FakeMCPClient:
    """In-memory stand-in for MCPClient talking to a tabular MCP server."""

    def __init__(self, databases: dict[str, dict] | None = None):
        self.databases = databases or {}
        self.calls: list[tuple[str, dict | None]] = []
        self.connected = False
        self.open_sessions = 0

    @asynccontextmanager
    async def connect(self):
        self.connected = True
        try:
            yield self
        finally:
            self.connected = False

    async def call_tool(self, tool_name: str, arguments: dict | None = None):
        self.calls.append((tool_name, arguments))
        if tool_name == "connect":
            self.open_sessions += 1
            return {"status": "connected"}
        if tool_name == "disconnect":
            self.open_sessions -= 1
            return {"status": "disconnected"}
        if tool_name == "list_databases":
            return [{"name": name} for name in self.databases]
        if tool_name == "get_database_definition":
            return {"createOrReplace": {"database": self.databases[arguments["database"]]}}
        raise AssertionError(f"unexpected tool {tool_name}")

    def tool_names(self) -> list[str]:
        return [name for name, _ in self.calls]
