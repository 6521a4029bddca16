"""
geco/data/inventory/collector.py - Inventory collector

Rebuilds the whole Inventory in one refresh cycle:

    1. projects         sequential; failure aborts the refresh (FatalRefreshError)
    2. instances        one bounded task per project
    3. instance groups  one bounded task per project, tagged with the project
    4. group members    sequential, per group; a failure keeps what was collected
    5. sort             projects by ID, instances by self-link
    6. persist          handed to InventoryCache.save

Per-project failures are recorded in the ErrorCollector and never abort the
refresh; the failing project simply contributes nothing.

Example:
    from geco.data.inventory import InventoryCache, InventoryCollector
    from geco.gcp import ResourceClient

    collector = InventoryCollector(ResourceClient.from_default_credentials(), InventoryCache())
    inventory = collector.refresh()
    print(collector.errors.get_summary())
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any

from geco.exceptions import FatalRefreshError, PartialEnrichmentError, RemoteCallError
from geco.gcp import ResourceClient
from geco.parallel import (
    BoundedTaskDispatcher,
    ErrorCollector,
    ErrorSeverity,
    FetchTask,
    ParallelConfig,
    ParallelExecutionResult,
    RetryConfig,
)

from .cache import InventoryCache
from .services import collect_instance_groups, collect_instances, collect_projects, enrich_instance_group
from .types import Instance, InstanceGroup, Inventory, Project

if TYPE_CHECKING:
    from geco.cli.ui.progress import ParallelTracker

logger = logging.getLogger(__name__)

# description -> context manager yielding a ParallelTracker (e.g. parallel_progress)
ProgressFactory = Callable[[str], "AbstractContextManager[ParallelTracker]"]


class InventoryCollector:
    """Aggregation coordinator for one refresh cycle

    The resource client is shared by reference with every worker.

    Attributes:
        client: Resource client
        cache: Where ``refresh`` persists the result (None: not persisted)
        config: Dispatcher settings (admission limit, pool size)
        retry_config: Retry policy per page call
        errors: Partial failures of the last refresh
    """

    def __init__(
        self,
        client: ResourceClient,
        cache: InventoryCache | None = None,
        config: ParallelConfig | None = None,
        retry_config: RetryConfig | None = None,
        error_collector: ErrorCollector | None = None,
    ):
        self.client = client
        self.cache = cache
        self.config = config or ParallelConfig()
        self.retry_config = retry_config
        self.errors = error_collector or ErrorCollector()
        self.last_dispatch: dict[str, ParallelExecutionResult[Any]] = {}

    def refresh(self, progress: ProgressFactory | None = None, save: bool = True) -> Inventory:
        """Rebuild the inventory from the APIs and persist it

        Args:
            progress: Optional ``description -> tracker context`` factory; the
                per-project phases each get their own tracker
            save: Persist to ``self.cache`` when set

        Raises:
            FatalRefreshError: the project listing failed
            CacheWriteError: the result could not be persisted
        """
        self.errors.clear()
        self.last_dispatch.clear()
        inventory = Inventory()

        inventory.projects = self.collect_projects()
        inventory.instances = self._tracked(progress, "instances", self.collect_instances, inventory.projects)
        inventory.instance_groups = self._tracked(
            progress, "instance groups", self.collect_instance_groups, inventory.projects
        )
        self.enrich_instance_groups(inventory.instance_groups)

        inventory.sort()
        logger.info(
            "refresh done: %d projects, %d instances, %d instance groups",
            len(inventory.projects),
            len(inventory.instances),
            len(inventory.instance_groups),
        )

        if save and self.cache is not None:
            self.cache.save(inventory)
        return inventory

    # =========================================================================
    # Phases
    # =========================================================================

    def collect_projects(self) -> list[Project]:
        """Project listing; the root of every other fetch"""
        logger.info("loading projects...")
        try:
            projects = collect_projects(self.client, self.retry_config)
        except (RemoteCallError, KeyError, TypeError, ValueError) as e:
            raise FatalRefreshError(cause=e) from e
        logger.info("loaded projects, %d found.", len(projects))
        return projects

    def collect_instances(
        self,
        projects: list[Project],
        progress_tracker: ParallelTracker | None = None,
    ) -> list[Instance]:
        tasks = [
            FetchTask(
                p.project_id,
                "instances",
                lambda p=p: collect_instances(self.client, p, self.retry_config),
                label=p.name,
            )
            for p in projects
        ]
        return self._dispatch("instances", tasks, progress_tracker)

    def collect_instance_groups(
        self,
        projects: list[Project],
        progress_tracker: ParallelTracker | None = None,
    ) -> list[InstanceGroup]:
        tasks = [
            FetchTask(
                p.project_id,
                "instance groups",
                lambda p=p: collect_instance_groups(self.client, p, self.retry_config),
                label=p.name,
            )
            for p in projects
        ]
        return self._dispatch("instance groups", tasks, progress_tracker)

    def enrich_instance_groups(self, groups: list[InstanceGroup]) -> int:
        """Fill in members group by group

        Returns:
            Total number of members appended
        """
        total = 0
        for group in groups:
            logger.info("loading members of %s in %s (%s)...", group.name, group.project_id, group.zone_name)
            try:
                total += enrich_instance_group(self.client, group, self.retry_config)
            except PartialEnrichmentError as e:
                total += e.collected
                self.errors.collect(
                    e.cause or e,
                    group.project_id,
                    "instance group members",
                    "compute.instanceGroups.listInstances",
                    severity=ErrorSeverity.WARNING,
                    resource_id=f"{e.zone}/{e.group_name}",
                )
        return total

    # =========================================================================
    # Internals
    # =========================================================================

    def _dispatch(
        self,
        resource: str,
        tasks: list[FetchTask[list[Any]]],
        progress_tracker: ParallelTracker | None,
    ) -> list[Any]:
        dispatcher = BoundedTaskDispatcher(self.config, error_collector=self.errors)
        result = dispatcher.dispatch(tasks, progress_tracker=progress_tracker)
        self.last_dispatch[resource] = result

        if result.error_count:
            logger.debug("%s: %s", resource, result.get_error_summary())
        return result.get_flat_data()

    def _tracked(
        self,
        progress: ProgressFactory | None,
        resource: str,
        collect: Callable[..., list[Any]],
        projects: list[Project],
    ) -> list[Any]:
        if progress is None:
            return collect(projects)

        with progress(f"loading {resource}") as tracker:
            return collect(projects, progress_tracker=tracker)
