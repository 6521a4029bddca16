"""
geco/gcp/client.py - Google Cloud resource client

A shareable handle for the list calls the inventory needs:

- Cloud Resource Manager v1: projects.list
- Compute Engine v1: instances.aggregatedList, instanceGroups.aggregatedList,
  instanceGroups.listInstances

Every call takes an optional continuation token and returns one ``Page``.
Aggregated responses (items grouped by ``zones/<zone>`` scope) are flattened
into a single item list.

``googleapiclient`` services sit on httplib2 transports, which are not
thread-safe, so the client builds one service object per thread. The client
itself holds no other state and can be shared by every worker.

Example:
    from geco.gcp import ResourceClient

    client = ResourceClient.from_default_credentials()
    page = client.list_projects()
    while page.next_page_token:
        page = client.list_projects(page.next_page_token)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import google.auth
from googleapiclient.discovery import build

from geco.config import settings

logger = logging.getLogger(__name__)

ServiceFactory = Callable[[str, str], Any]


@dataclass
class Page:
    """One page of a list response

    Attributes:
        items: Resources on this page (already flattened)
        next_page_token: Continuation token, None when this is the last page
    """

    items: list[dict[str, Any]] = field(default_factory=list)
    next_page_token: str | None = None


def flatten_scoped_items(items_by_scope: Mapping[str, Any] | None, key: str) -> list[dict[str, Any]]:
    """Flatten an aggregated list's ``items`` map

    Scopes without resources carry only a ``warning`` entry and contribute
    nothing.

    Args:
        items_by_scope: ``{"zones/us-central1-a": {key: [...]}, ...}``
        key: Resource key inside each scope ("instances", "instanceGroups")
    """
    flattened: list[dict[str, Any]] = []
    for scoped in (items_by_scope or {}).values():
        flattened.extend(scoped.get(key) or [])
    return flattened


def _page_kwargs(page_token: str | None, **kwargs: Any) -> dict[str, Any]:
    if page_token:
        kwargs["pageToken"] = page_token
    return kwargs


class ResourceClient:
    """Authenticated, thread-safe handle for paginated list calls"""

    def __init__(
        self,
        credentials: Any = None,
        service_factory: ServiceFactory | None = None,
    ):
        """
        Args:
            credentials: google-auth credentials (None: library default lookup)
            service_factory: ``(api_name, version) -> service``; overrides
                discovery-based construction (used by tests)
        """
        self._credentials = credentials
        self._service_factory = service_factory or self._build_service
        self._local = threading.local()

    @classmethod
    def from_default_credentials(cls) -> ResourceClient:
        """Client using Application Default Credentials with read-only scopes

        Raises:
            google.auth.exceptions.DefaultCredentialsError: no credentials found
        """
        credentials, _project = google.auth.default(scopes=list(settings.API_SCOPES))
        return cls(credentials)

    def _build_service(self, api_name: str, version: str) -> Any:
        return build(api_name, version, credentials=self._credentials, cache_discovery=False)

    def _service(self, api_name: str, version: str) -> Any:
        services: dict[tuple[str, str], Any] | None = getattr(self._local, "services", None)
        if services is None:
            services = self._local.services = {}

        key = (api_name, version)
        if key not in services:
            logger.debug("building %s %s service for %s", api_name, version, threading.current_thread().name)
            services[key] = self._service_factory(api_name, version)
        return services[key]

    # =========================================================================
    # Cloud Resource Manager
    # =========================================================================

    def list_projects(self, page_token: str | None = None) -> Page:
        """projects.list"""
        service = self._service("cloudresourcemanager", "v1")
        response = service.projects().list(**_page_kwargs(page_token)).execute()
        return Page(response.get("projects") or [], response.get("nextPageToken"))

    # =========================================================================
    # Compute Engine
    # =========================================================================

    def aggregated_list_instances(self, project: str, page_token: str | None = None) -> Page:
        """instances.aggregatedList, flattened across zones"""
        service = self._service("compute", "v1")
        response = service.instances().aggregatedList(**_page_kwargs(page_token, project=project)).execute()
        return Page(flatten_scoped_items(response.get("items"), "instances"), response.get("nextPageToken"))

    def aggregated_list_instance_groups(self, project: str, page_token: str | None = None) -> Page:
        """instanceGroups.aggregatedList, flattened across zones"""
        service = self._service("compute", "v1")
        response = service.instanceGroups().aggregatedList(**_page_kwargs(page_token, project=project)).execute()
        return Page(
            flatten_scoped_items(response.get("items"), "instanceGroups"),
            response.get("nextPageToken"),
        )

    def list_instance_group_members(
        self,
        project: str,
        zone: str,
        group: str,
        page_token: str | None = None,
    ) -> Page:
        """instanceGroups.listInstances (all member states)"""
        service = self._service("compute", "v1")
        request = service.instanceGroups().listInstances(
            **_page_kwargs(
                page_token,
                project=project,
                zone=zone,
                instanceGroup=group,
                body={"instanceState": "ALL"},
            )
        )
        response = request.execute()
        return Page(response.get("items") or [], response.get("nextPageToken"))
