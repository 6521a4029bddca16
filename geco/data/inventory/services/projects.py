"""
geco/data/inventory/services/projects.py - Project collection
"""

from __future__ import annotations

import logging

from geco.gcp import ResourceClient
from geco.parallel import RetryConfig

from ..pagination import paginate
from ..types import Project

logger = logging.getLogger(__name__)


def collect_projects(client: ResourceClient, retry_config: RetryConfig | None = None) -> list[Project]:
    """List every project visible to the credentials

    A project ID listed more than once (pages shifting under the listing)
    is kept at its first position.

    Raises:
        RemoteCallError: the listing failed (no partial result)
        KeyError, TypeError, ValueError: a project item could not be parsed
    """
    items = paginate(client.list_projects, "cloudresourcemanager.projects.list", retry_config=retry_config)

    projects: list[Project] = []
    seen: set[str] = set()
    for item in items:
        project = Project.from_api(item)
        if project.project_id in seen:
            logger.debug("project %s listed twice, keeping the first entry", project.project_id)
            continue
        seen.add(project.project_id)
        projects.append(project)
    return projects
