"""
Infrastructure layer package.

Contains all I/O and external system integrations:
- SQL Server channel (sql/)
- Configuration file loading
- Logging setup
- RPC availability cache (cache/)
"""

from mssqlhop.infrastructure.cache import RpcAvailabilityCache, shared_rpc_cache
from mssqlhop.infrastructure.config_loader import ConfigLoader, EngineSettings
from mssqlhop.infrastructure.logging_config import setup_logging

__all__ = [
    # Config
    "ConfigLoader",
    "EngineSettings",
    # Cache
    "RpcAvailabilityCache",
    "shared_rpc_cache",
    # Logging
    "setup_logging",
]
