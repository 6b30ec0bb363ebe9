"""Connection strings and database resolution for tabular servers."""

import logging

from ..errors import DatabaseNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "MSOLAP"
PROVIDER = "Provider"
DATA_SOURCE = "Data Source"
INITIAL_CATALOG = "Initial Catalog"


class ConnectionDescriptor:
    """An OLE DB style connection string (``Key=Value;Key=Value``).

    Keys are case-insensitive and keep their original spelling and order.
    Values may be quoted with single or double quotes; a doubled quote
    inside a quoted value stands for one quote character.
    """

    def __init__(self, items: list[tuple[str, str]] | None = None):
        self._items: list[list[str]] = []
        for key, value in items or []:
            self[key] = value

    # -- parsing ------------------------------------------------------------

    @classmethod
    def try_parse(cls, text: str) -> "ConnectionDescriptor | None":
        """Parse ``text``; return None when it is not a connection string."""
        items = _parse_pairs(text)
        if not items:
            return None
        return cls(items)

    @classmethod
    def parse(cls, text: str) -> "ConnectionDescriptor":
        descriptor = cls.try_parse(text)
        if descriptor is None:
            raise ValueError(f"Invalid connection string: {text!r}")
        return descriptor

    # -- mapping access -----------------------------------------------------

    def _find(self, key: str) -> list[str] | None:
        for item in self._items:
            if item[0].lower() == key.lower():
                return item
        return None

    def get(self, key: str, default: str | None = None) -> str | None:
        item = self._find(key)
        return item[1] if item else default

    def __getitem__(self, key: str) -> str:
        item = self._find(key)
        if item is None:
            raise KeyError(key)
        return item[1]

    def __setitem__(self, key: str, value: str) -> None:
        item = self._find(key)
        if item is None:
            self._items.append([key, value])
        else:
            item[1] = value

    def __contains__(self, key: str) -> bool:
        return self._find(key) is not None

    def keys(self) -> list[str]:
        return [k for k, _ in self._items]

    def without(self, *keys: str) -> "ConnectionDescriptor":
        """Copy of this descriptor with ``keys`` removed."""
        dropped = {k.lower() for k in keys}
        return ConnectionDescriptor([(k, v) for k, v in self._items if k.lower() not in dropped])

    @property
    def provider(self) -> str | None:
        return self.get(PROVIDER)

    @property
    def data_source(self) -> str | None:
        return self.get(DATA_SOURCE)

    @property
    def initial_catalog(self) -> str | None:
        return self.get(INITIAL_CATALOG)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ConnectionDescriptor):
            return NotImplemented
        return str(self) == str(other)

    def __str__(self) -> str:
        return ";".join(f"{k}={_quote(v)}" for k, v in self._items)

    def __repr__(self) -> str:
        return f"ConnectionDescriptor({str(self)!r})"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_connection_string(server_or_connection_string: str, database_name: str) -> str:
    """Build a connection string for ``database_name``.

    The input may be a full connection string or a bare server address;
    anything that does not parse as a connection string is taken as a
    server name with the default provider. An address that merely contains
    ``=`` (``https://srv?x=1``) parses without a Provider or Data Source and
    is also taken as a server name. The catalog is always set to
    ``database_name``.
    """
    descriptor = ConnectionDescriptor.try_parse(server_or_connection_string)
    if descriptor is None or (PROVIDER not in descriptor and DATA_SOURCE not in descriptor):
        descriptor = ConnectionDescriptor([
            (PROVIDER, DEFAULT_PROVIDER),
            (DATA_SOURCE, server_or_connection_string),
        ])
    descriptor[INITIAL_CATALOG] = database_name
    return str(descriptor)


def get_data_source(connection_string: str) -> str | None:
    return ConnectionDescriptor.parse(connection_string).data_source


def get_initial_catalog(connection_string: str) -> str | None:
    return ConnectionDescriptor.parse(connection_string).initial_catalog


async def get_database(server, server_name: str, database_name: str) -> dict:
    """Connect to ``server_name`` and return the definition of ``database_name``.

    Args:
        server: A connected TabularServerClient.

    Raises:
        DatabaseNotFoundError: The database does not exist, or the caller
            has no rights to see it. The server does not tell the two apart.
    """
    async with server.session(server_name):
        database = await server.find_database_by_name(database_name)
    if database is None:
        raise DatabaseNotFoundError(database_name)
    logger.info(f"Resolved database '{database_name}' on {server_name}")
    return database


async def get_database_from_connection_string(server, connection_string: str) -> dict:
    """Same as get_database, taking the database name from the Initial Catalog."""
    database_name = get_initial_catalog(connection_string)
    if not database_name:
        raise ValueError("Connection string does not specify an Initial Catalog")
    async with server.session(connection_string):
        database = await server.find_database_by_name(database_name)
    if database is None:
        raise DatabaseNotFoundError(database_name)
    logger.info(f"Resolved database '{database_name}'")
    return database


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------

def _parse_pairs(text: str) -> list[tuple[str, str]] | None:
    """Split a connection string into (key, value) pairs, None if malformed."""
    if not isinstance(text, str):
        return None

    pairs = []
    i, n = 0, len(text)
    while i < n:
        # skip separators between pairs
        while i < n and (text[i] == ";" or text[i].isspace()):
            i += 1
        if i >= n:
            break

        eq = text.find("=", i)
        semi = text.find(";", i)
        if eq == -1 or (semi != -1 and semi < eq):
            return None
        key = text[i:eq].strip()
        if not key:
            return None
        i = eq + 1

        while i < n and text[i].isspace() and text[i] != ";":
            i += 1

        if i < n and text[i] in "\"'":
            quote = text[i]
            i += 1
            chars = []
            while True:
                if i >= n:
                    return None  # unterminated quote
                if text[i] == quote:
                    if i + 1 < n and text[i + 1] == quote:
                        chars.append(quote)
                        i += 2
                        continue
                    i += 1
                    break
                chars.append(text[i])
                i += 1
            value = "".join(chars)
            while i < n and text[i].isspace():
                i += 1
            if i < n and text[i] != ";":
                return None
        else:
            end = text.find(";", i)
            end = n if end == -1 else end
            value = text[i:end].strip()
            i = end

        pairs.append((key, value))
    return pairs or None


def _quote(value: str) -> str:
    if value == "" or not any(ch in value for ch in ";\"'") and value == value.strip():
        return value
    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"
    return '"' + value.replace('"', '""') + '"'
