"""
geco/data/inventory/services/compute.py - Compute Engine collection

Instances and instance groups are listed per project with aggregated list
calls; group members are listed per (project, zone, group).
"""

from __future__ import annotations

import logging

from geco.exceptions import PartialEnrichmentError, RemoteCallError
from geco.gcp import ResourceClient
from geco.parallel import RetryConfig

from ..pagination import iter_pages, paginate
from ..types import Instance, InstanceGroup, InstanceGroupMember, Project

logger = logging.getLogger(__name__)


def collect_instances(
    client: ResourceClient,
    project: Project,
    retry_config: RetryConfig | None = None,
) -> list[Instance]:
    """VM instances in every zone of one project"""
    items = paginate(
        lambda token: client.aggregated_list_instances(project.project_id, token),
        "compute.instances.aggregatedList",
        scope=project.project_id,
        retry_config=retry_config,
    )
    return [Instance.from_api(item) for item in items]


def collect_instance_groups(
    client: ResourceClient,
    project: Project,
    retry_config: RetryConfig | None = None,
) -> list[InstanceGroup]:
    """Instance groups in every zone of one project, tagged with the project"""
    items = paginate(
        lambda token: client.aggregated_list_instance_groups(project.project_id, token),
        "compute.instanceGroups.aggregatedList",
        scope=project.project_id,
        retry_config=retry_config,
    )
    return [InstanceGroup.from_api(item, project_id=project.project_id) for item in items]


def enrich_instance_group(
    client: ResourceClient,
    group: InstanceGroup,
    retry_config: RetryConfig | None = None,
) -> int:
    """Append the group's members to ``group.members`` page by page

    Members from pages fetched before a failure stay on the group.

    Returns:
        Number of members appended

    Raises:
        PartialEnrichmentError: a page call failed or a member item could not
            be parsed; ``collected`` holds how many members were appended
            before it
    """
    zone = group.zone_name
    scope = f"{group.project_id}/{zone}/{group.name}"
    collected = 0

    pages = iter_pages(
        lambda token: client.list_instance_group_members(group.project_id, zone, group.name, token),
        "compute.instanceGroups.listInstances",
        scope=scope,
        retry_config=retry_config,
    )
    try:
        for page in pages:
            # a page is appended whole or not at all
            members = [InstanceGroupMember.from_api(item) for item in page.items]
            group.members.extend(members)
            collected += len(members)
    except (RemoteCallError, KeyError, TypeError, ValueError) as e:
        raise PartialEnrichmentError(group.project_id, zone, group.name, collected=collected, cause=e) from e

    logger.debug("loaded %d members of %s", collected, scope)
    return collected
