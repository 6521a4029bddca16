"""
geco/data/inventory/services - Per-resource collectors

Each ``collect_*`` function lists one resource type within one scope (the
organization for projects, a single project for compute resources).
``InventoryCollector`` fans the per-project ones out across projects
through the bounded dispatcher.
"""

from .compute import collect_instance_groups, collect_instances, enrich_instance_group
from .projects import collect_projects

__all__: list[str] = [
    "collect_projects",
    "collect_instances",
    "collect_instance_groups",
    "enrich_instance_group",
]
