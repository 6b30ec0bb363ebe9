"""Exceptions raised while reading and extracting a tabular model."""


class ExtractionError(Exception):
    """Base class for errors that abort a model extraction."""


class ReferenceResolutionError(ExtractionError, LookupError):
    """A name reference matched no object, or more than one."""

    def __init__(self, kind: str, name: str, matches: int):
        self.kind = kind
        self.name = name
        self.matches = matches
        if matches == 0:
            message = f"Cannot resolve {kind} reference {name}: no match found."
        else:
            message = f"Ambiguous {kind} reference {name}: {matches} matches found."
        super().__init__(message)


class DatabaseNotFoundError(ExtractionError, LookupError):
    """The database does not exist or the caller cannot see it."""

    def __init__(self, database_name: str):
        self.database_name = database_name
        super().__init__(
            f"The database '{database_name}' could not be found. "
            f"Either it does not exist or you do not have admin rights to it."
        )


class ServerConnectionError(RuntimeError):
    """The MCP server process could not be started or initialized."""


class ToolCallError(RuntimeError):
    """An MCP tool call failed or returned an error result."""
