"""Reads a Model from a database on a live tabular server."""

import logging
from dataclasses import dataclass

from ..mcp_client.client import MCPClient
from ..mcp_client.tabular_tools import TabularServerClient
from ..models import Model
from .connection import (
    build_connection_string,
    get_data_source,
    get_database,
    get_database_from_connection_string,
    get_initial_catalog,
)
from .statistics import DataSamplingProvider, DmvStatisticsProvider, NoStatistics
from .tom_extractor import extract_model

logger = logging.getLogger(__name__)


@dataclass
class ExtractionOptions:
    """Controls the statistics phase of an extraction."""
    read_statistics_from_data: bool = True
    sample_rows: int = 0
    analyze_direct_query: bool = False


class ModelReader:
    """Extracts a Model from a database on a tabular server."""

    def __init__(
        self,
        server_command: list[str],
        dmv_provider: DmvStatisticsProvider | None = None,
        sampling_provider: DataSamplingProvider | None = None,
        client_factory=MCPClient,
    ):
        """
        Args:
            server_command: Command that starts the tabular MCP server.
            dmv_provider: Enriches the Model from server DMVs (runs on every extraction).
            sampling_provider: Enriches the Model by sampling data (runs on request).
            client_factory: Builds the MCP client from ``server_command``.
        """
        self.server_command = server_command
        self.dmv_provider = dmv_provider or NoStatistics()
        self.sampling_provider = sampling_provider or NoStatistics()
        self.client_factory = client_factory

    async def get_model(
        self,
        connection_string: str,
        application_name: str | None = None,
        application_version: str | None = None,
        options: ExtractionOptions | None = None,
    ) -> Model:
        """Extract the database named by the connection string's Initial Catalog."""
        options = options or ExtractionOptions()
        async with self.client_factory(self.server_command).connect() as client:
            server = TabularServerClient(client)
            database = await get_database_from_connection_string(server, connection_string)
            return await self._extract(
                server,
                database,
                connection_string,
                server_name=get_data_source(connection_string),
                database_name=get_initial_catalog(connection_string),
                application_name=application_name,
                application_version=application_version,
                options=options,
            )

    async def get_model_from_server(
        self,
        server_name: str,
        database_name: str,
        application_name: str | None = None,
        application_version: str | None = None,
        options: ExtractionOptions | None = None,
    ) -> Model:
        """Extract ``database_name`` from ``server_name`` (server or connection string)."""
        options = options or ExtractionOptions()
        async with self.client_factory(self.server_command).connect() as client:
            server = TabularServerClient(client)
            database = await get_database(server, server_name, database_name)
            connection_string = build_connection_string(server_name, database_name)
            return await self._extract(
                server,
                database,
                connection_string,
                server_name=server_name,
                database_name=database_name,
                application_name=application_name,
                application_version=application_version,
                options=options,
            )

    async def _extract(
        self,
        server: TabularServerClient,
        database: dict,
        connection_string: str,
        server_name: str | None,
        database_name: str,
        application_name: str | None,
        application_version: str | None,
        options: ExtractionOptions,
    ) -> Model:
        model = extract_model(database, application_name, application_version)

        async with server.session(connection_string) as connection:
            logger.info("Populating statistics from DMVs...")
            await self.dmv_provider.populate_from_dmv(
                model, connection, server_name, database_name,
                application_name, application_version,
            )

            if options.read_statistics_from_data:
                logger.info(f"Sampling data statistics (sample rows: {options.sample_rows})...")
                await self.sampling_provider.update_statistics(
                    model, connection, options.sample_rows, options.analyze_direct_query,
                )

        return model
