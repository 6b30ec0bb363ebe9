from .connection import (
    ConnectionDescriptor,
    build_connection_string,
    get_database,
    get_database_from_connection_string,
)
from .orchestrator import ExtractionOptions, ModelReader
from .statistics import DataSamplingProvider, DmvStatisticsProvider, NoStatistics
from .tom_extractor import TomExtractor, extract_model
