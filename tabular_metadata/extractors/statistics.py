"""Statistics providers that enrich an extracted Model in place.

Computing statistics is left to the providers; the orchestrator only
decides when they run. Providers receive the open server session as their
connection and may add numeric fields to the Model, but must not change
its structure.
"""

import logging
from abc import ABC, abstractmethod

from ..models import Model

logger = logging.getLogger(__name__)


class DmvStatisticsProvider(ABC):
    """Reads size and cardinality figures from the server's DMVs."""

    @abstractmethod
    async def populate_from_dmv(
        self,
        model: Model,
        connection,
        server_name: str | None,
        database_name: str,
        application_name: str | None,
        application_version: str | None,
    ) -> None:
        ...


class DataSamplingProvider(ABC):
    """Estimates statistics by running sampling queries against the model."""

    @abstractmethod
    async def update_statistics(
        self,
        model: Model,
        connection,
        sample_rows: int,
        analyze_direct_query: bool,
    ) -> None:
        ...


class NoStatistics(DmvStatisticsProvider, DataSamplingProvider):
    """Provider used when none is configured. Leaves the Model untouched."""

    async def populate_from_dmv(self, model, connection, server_name, database_name,
                                application_name, application_version) -> None:
        logger.debug(f"No DMV statistics provider configured for '{database_name}'")

    async def update_statistics(self, model, connection, sample_rows, analyze_direct_query) -> None:
        logger.debug("No data sampling provider configured")
