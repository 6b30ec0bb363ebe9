from .client import MCPClient
from .tabular_tools import TabularServerClient
