"""
geco - Google Cloud inventory cache

Inventories projects, VM instances and instance groups across every project
the operator can access and caches the snapshot locally for offline browsing.

Architecture:
    geco/
    ├── gcp/            # Resource client (Cloud Resource Manager, Compute Engine)
    ├── parallel/       # Bounded task dispatcher, retry, error collection
    ├── data/inventory/ # Pagination, collector, cache store, entity types
    ├── cli/            # Click CLI, Rich console helpers
    ├── config.py       # Central settings
    └── exceptions.py   # Exception hierarchy

Usage:
    from geco.data.inventory import InventoryCache, InventoryCollector
    from geco.gcp import ResourceClient

    client = ResourceClient.from_default_credentials()
    collector = InventoryCollector(client, cache=InventoryCache())
    inventory = collector.refresh()
"""

__version__ = "0.4.0"

__all__: list[str] = ["__version__"]
