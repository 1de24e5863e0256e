"""Server lifecycle — startup, supervision and shutdown."""

from hana_mcp.server.lifecycle import (
    LifecycleError,
    LifecycleManager,
    LifecycleState,
    LifecycleStatus,
)

__all__ = ["LifecycleError", "LifecycleManager", "LifecycleState", "LifecycleStatus"]
