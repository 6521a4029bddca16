"""
geco/data/inventory - Cloud inventory collection and local cache

Example:
    from geco.data.inventory import InventoryCache, InventoryCollector

    cache = InventoryCache()
    inventory = cache.load()
    if cache.is_stale():
        inventory = InventoryCollector(client, cache).refresh()
"""

from .cache import InventoryCache
from .collector import InventoryCollector
from .pagination import iter_pages, paginate
from .types import (
    AccessConfig,
    Instance,
    InstanceGroup,
    InstanceGroupMember,
    Inventory,
    NamedPort,
    NetworkInterface,
    Project,
)

__all__: list[str] = [
    # Collection
    "InventoryCollector",
    "iter_pages",
    "paginate",
    # Cache
    "InventoryCache",
    # Types
    "AccessConfig",
    "Instance",
    "InstanceGroup",
    "InstanceGroupMember",
    "Inventory",
    "NamedPort",
    "NetworkInterface",
    "Project",
]
