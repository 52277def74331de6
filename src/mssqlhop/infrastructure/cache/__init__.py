"""
Infrastructure cache package.
"""

from mssqlhop.infrastructure.cache.rpc_cache import RpcAvailabilityCache, shared_rpc_cache

__all__ = ["RpcAvailabilityCache", "shared_rpc_cache"]
