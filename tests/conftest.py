"""
tests/conftest.py - Shared pytest fixtures

Scripted fakes for the Google APIs; no test touches the network.

Usage:
    def test_something(fake_client):
        fake_client.add_project("proj-a", instances=[instance_item("proj-a", "vm-1")])
"""

import json
from types import SimpleNamespace
from typing import Any

import pytest
from googleapiclient.errors import HttpError

from geco.gcp import Page
from geco.parallel import RetryConfig

# =============================================================================
# Builders
# =============================================================================


def make_http_error(status: int, reason: str = "") -> HttpError:
    """HttpError as googleapiclient raises it"""
    resp = SimpleNamespace(status=status, reason="error")
    body: dict[str, Any] = {"error": {"code": status, "message": f"HTTP {status}"}}
    if reason:
        body["error"]["errors"] = [{"reason": reason, "message": reason}]
    return HttpError(resp, json.dumps(body).encode("utf-8"), uri="https://compute.googleapis.com/")


def project_item(project_id: str, number: int = 1, name: str = "") -> dict[str, Any]:
    return {
        "projectId": project_id,
        "name": name or project_id,
        "projectNumber": str(number),
        "lifecycleState": "ACTIVE",
    }


def instance_item(project_id: str, name: str, zone: str = "us-central1-a", nat_ip: str = "") -> dict[str, Any]:
    base = f"https://www.googleapis.com/compute/v1/projects/{project_id}/zones/{zone}"
    interface: dict[str, Any] = {"name": "nic0", "network": "default", "networkIP": "10.0.0.2"}
    if nat_ip:
        interface["accessConfigs"] = [{"name": "External NAT", "type": "ONE_TO_ONE_NAT", "natIP": nat_ip}]
    return {
        "name": name,
        "selfLink": f"{base}/instances/{name}",
        "zone": base,
        "machineType": f"{base}/machineTypes/e2-small",
        "status": "RUNNING",
        "networkInterfaces": [interface],
    }


def group_item(project_id: str, name: str, zone: str = "us-central1-a", size: int = 0) -> dict[str, Any]:
    base = f"https://www.googleapis.com/compute/v1/projects/{project_id}/zones/{zone}"
    return {"name": name, "zone": base, "selfLink": f"{base}/instanceGroups/{name}", "size": size}


def member_item(project_id: str, instance: str, zone: str = "us-central1-a") -> dict[str, Any]:
    return {
        "instance": f"https://www.googleapis.com/compute/v1/projects/{project_id}/zones/{zone}/instances/{instance}",
        "status": "RUNNING",
        "namedPorts": [{"name": "http", "port": 80}],
    }


def paged(items: list[dict[str, Any]], page_size: int) -> list[Page]:
    """Split items into pages chained by tokens "t1", "t2", ..."""
    if not items:
        return [Page([], None)]
    chunks = [items[i : i + page_size] for i in range(0, len(items), page_size)]
    return [Page(chunk, f"t{i + 1}" if i + 1 < len(chunks) else None) for i, chunk in enumerate(chunks)]


# =============================================================================
# Fake resource client
# =============================================================================


class ScriptedPages:
    """Answers ``call(page_token)`` from a page script

    Page N is served for the token Page N-1 handed out. A script entry that is
    an exception is raised instead of returned.
    """

    def __init__(self, script: list[Any]):
        self.script = script
        self.tokens: list[str | None] = []

    def __call__(self, page_token: str | None = None) -> Page:
        self.tokens.append(page_token)
        index = 0 if page_token is None else int(page_token.lstrip("t"))
        entry = self.script[index]
        if isinstance(entry, BaseException):
            raise entry
        return entry


class FakeResourceClient:
    """Stands in for ``geco.gcp.ResourceClient``

    Each listing is scripted per scope. Unscripted scopes answer one empty page.
    """

    def __init__(self) -> None:
        self.projects = ScriptedPages([Page([], None)])
        self.instances: dict[str, ScriptedPages] = {}
        self.groups: dict[str, ScriptedPages] = {}
        self.members: dict[tuple[str, str, str], ScriptedPages] = {}

    def add_project(
        self,
        project_id: str,
        number: int = 1,
        instances: list[Any] | None = None,
        groups: list[Any] | None = None,
    ) -> None:
        items = self.projects.script[0].items
        items.append(project_item(project_id, number))
        if instances is not None:
            self.instances[project_id] = _as_script(instances)
        if groups is not None:
            self.groups[project_id] = _as_script(groups)

    def list_projects(self, page_token: str | None = None) -> Page:
        return self.projects(page_token)

    def aggregated_list_instances(self, project: str, page_token: str | None = None) -> Page:
        return self.instances.get(project, ScriptedPages([Page()]))(page_token)

    def aggregated_list_instance_groups(self, project: str, page_token: str | None = None) -> Page:
        return self.groups.get(project, ScriptedPages([Page()]))(page_token)

    def list_instance_group_members(self, project: str, zone: str, group: str, page_token: str | None = None) -> Page:
        return self.members.get((project, zone, group), ScriptedPages([Page()]))(page_token)


def _as_script(entries: list[Any]) -> ScriptedPages:
    """A single exception, a list of pages, or a flat list of items (one page)"""
    if entries and all(isinstance(e, dict) for e in entries):
        return ScriptedPages([Page(list(entries), None)])
    return ScriptedPages(list(entries))


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_client():
    return FakeResourceClient()


@pytest.fixture
def no_retry():
    """Retry policy that never waits"""
    return RetryConfig(max_retries=0, base_delay=0.0, jitter=False)


@pytest.fixture
def fast_retry():
    """Retry policy with retries but zero delay"""
    return RetryConfig(max_retries=2, base_delay=0.0, jitter=False)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep the developer's cache and settings out of tests"""
    for name in (
        "GECO_MAX_PARALLEL",
        "GECO_MAX_WORKERS",
        "GECO_CACHE_TTL",
        "GECO_RETRY_COUNT",
        "LOG_LEVEL",
        "LOG_FORMAT",
        "DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GECO_CACHE_DIR", str(tmp_path / "geco-cache"))
