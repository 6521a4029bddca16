"""
tests/data/test_inventory_collector.py - geco/data/inventory/collector.py tests
"""

from contextlib import contextmanager
from unittest.mock import MagicMock

import pytest
from conftest import ScriptedPages, group_item, instance_item, make_http_error, member_item, project_item

from geco.data.inventory.cache import InventoryCache
from geco.data.inventory.collector import InventoryCollector
from geco.exceptions import FatalRefreshError
from geco.gcp import Page
from geco.parallel import ErrorSeverity, ParallelConfig


@pytest.fixture
def cache(tmp_path):
    return InventoryCache(tmp_path / "cache")


def _collector(client, cache=None, retry=None, max_in_flight=10):
    return InventoryCollector(client, cache, config=ParallelConfig(max_in_flight=max_in_flight), retry_config=retry)


class TestRefresh:
    """InventoryCollector.refresh"""

    def test_collects_and_sorts(self, fake_client, cache, no_retry):
        fake_client.add_project("proj-c", 3, instances=[instance_item("proj-c", "vm-c")])
        fake_client.add_project("proj-a", 1, instances=[instance_item("proj-a", "vm-b"), instance_item("proj-a", "vm-a")])
        fake_client.add_project("proj-b", 2, instances=[instance_item("proj-b", "vm-x")])

        inventory = _collector(fake_client, cache, no_retry).refresh()

        assert [p.project_id for p in inventory.projects] == ["proj-a", "proj-b", "proj-c"]
        links = [i.self_link for i in inventory.instances]
        assert links == sorted(links)
        assert len(set(links)) == 4

    def test_paginated_instances(self, fake_client, no_retry):
        fake_client.add_project(
            "proj-a",
            instances=[
                Page([instance_item("proj-a", "vm-1"), instance_item("proj-a", "vm-2")], "t1"),
                Page([instance_item("proj-a", "vm-3")], None),
            ],
        )

        inventory = _collector(fake_client, retry=no_retry).refresh(save=False)

        assert [i.name for i in inventory.instances] == ["vm-1", "vm-2", "vm-3"]

    def test_one_task_per_project(self, fake_client, no_retry):
        for n in range(7):
            fake_client.add_project(f"proj-{n}", n)

        collector = _collector(fake_client, retry=no_retry, max_in_flight=2)
        collector.refresh(save=False)

        assert collector.last_dispatch["instances"].total_count == 7
        assert collector.last_dispatch["instance groups"].total_count == 7

    def test_partial_failure_still_persists(self, fake_client, cache, no_retry):
        fake_client.add_project("proj-1", 1, instances=[instance_item("proj-1", "vm-1")])
        fake_client.add_project("proj-2", 2, instances=[make_http_error(500)])
        fake_client.add_project("proj-3", 3, instances=[instance_item("proj-3", "vm-3")])

        collector = _collector(fake_client, cache, no_retry)
        inventory = collector.refresh()

        assert {i.project_id for i in inventory.instances} == {"proj-1", "proj-3"}
        assert len(inventory.projects) == 3
        assert collector.last_dispatch["instances"].total_count == 3
        assert collector.last_dispatch["instances"].error_count == 1
        assert [e.project_id for e in collector.errors.errors] == ["proj-2"]

        loaded = cache.load()
        assert [i.name for i in loaded.instances] == ["vm-1", "vm-3"]

    def test_project_listing_failure_is_fatal(self, fake_client, cache, no_retry):
        fake_client.projects = ScriptedPages([make_http_error(403)])

        with pytest.raises(FatalRefreshError):
            _collector(fake_client, cache, no_retry).refresh()

        assert not (cache.cache_dir / "projects.json").exists()

    def test_project_listing_failure_on_later_page(self, fake_client, no_retry):
        fake_client.projects = ScriptedPages([Page([{"projectId": "proj-a"}], "t1"), make_http_error(500)])

        with pytest.raises(FatalRefreshError):
            _collector(fake_client, retry=no_retry).refresh(save=False)

    def test_malformed_project_is_fatal(self, fake_client, cache, no_retry):
        fake_client.projects = ScriptedPages([Page([{"name": "no id"}])])

        with pytest.raises(FatalRefreshError) as exc_info:
            _collector(fake_client, cache, no_retry).refresh()

        assert isinstance(exc_info.value.cause, KeyError)
        assert not (cache.cache_dir / "projects.json").exists()

    def test_duplicate_project_fetched_once(self, fake_client, no_retry):
        fake_client.add_project(
            "proj-a", instances=[instance_item("proj-a", "vm-1")], groups=[group_item("proj-a", "web")]
        )
        fake_client.projects.script[0].items.append(project_item("proj-a", name="again"))

        collector = _collector(fake_client, retry=no_retry)
        inventory = collector.refresh(save=False)

        assert [p.project_id for p in inventory.projects] == ["proj-a"]
        assert inventory.projects[0].name == "proj-a"
        assert [i.name for i in inventory.instances] == ["vm-1"]
        assert [(g.project_id, g.name) for g in inventory.instance_groups] == [("proj-a", "web")]
        assert collector.last_dispatch["instances"].total_count == 1
        assert collector.last_dispatch["instance groups"].total_count == 1

    def test_groups_tagged_with_project(self, fake_client, no_retry):
        fake_client.add_project("proj-a", groups=[group_item("proj-a", "web")])
        fake_client.add_project("proj-b", groups=[group_item("proj-b", "api"), group_item("proj-b", "db")])

        inventory = _collector(fake_client, retry=no_retry).refresh(save=False)

        assert sorted((g.project_id, g.name) for g in inventory.instance_groups) == [
            ("proj-a", "web"),
            ("proj-b", "api"),
            ("proj-b", "db"),
        ]

    def test_progress_factory(self, fake_client, no_retry):
        fake_client.add_project("proj-a")
        fake_client.add_project("proj-b")
        trackers = {}

        @contextmanager
        def progress(description):
            trackers[description] = MagicMock()
            yield trackers[description]

        _collector(fake_client, retry=no_retry).refresh(progress=progress, save=False)

        assert set(trackers) == {"loading instances", "loading instance groups"}
        trackers["loading instances"].set_total.assert_called_once_with(2)
        assert trackers["loading instances"].on_complete.call_count == 2


class TestEnrichment:
    """Instance group member enrichment"""

    def test_members_appended(self, fake_client, no_retry):
        fake_client.add_project("proj-a", groups=[group_item("proj-a", "web")])
        fake_client.members[("proj-a", "us-central1-a", "web")] = ScriptedPages(
            [
                Page([member_item("proj-a", "vm-1")], "t1"),
                Page([member_item("proj-a", "vm-2")], None),
            ]
        )

        inventory = _collector(fake_client, retry=no_retry).refresh(save=False)

        assert [m.instance_name for m in inventory.instance_groups[0].members] == ["vm-1", "vm-2"]

    def test_partial_enrichment_keeps_members(self, fake_client, no_retry):
        fake_client.add_project("proj-a", groups=[group_item("proj-a", "web"), group_item("proj-a", "api")])
        fake_client.members[("proj-a", "us-central1-a", "web")] = ScriptedPages(
            [Page([member_item("proj-a", "vm-1")], "t1"), make_http_error(503)]
        )
        fake_client.members[("proj-a", "us-central1-a", "api")] = ScriptedPages([Page([member_item("proj-a", "vm-9")])])

        collector = _collector(fake_client, retry=no_retry)
        inventory = collector.refresh(save=False)

        groups = {g.name: g for g in inventory.instance_groups}
        assert [m.instance_name for m in groups["web"].members] == ["vm-1"]
        assert [m.instance_name for m in groups["api"].members] == ["vm-9"]

        assert len(collector.errors.errors) == 1
        error = collector.errors.errors[0]
        assert error.resource_id == "us-central1-a/web"
        assert error.severity == ErrorSeverity.WARNING

    def test_enrich_returns_total(self, fake_client, no_retry):
        fake_client.add_project("proj-a", groups=[group_item("proj-a", "web")])
        fake_client.members[("proj-a", "us-central1-a", "web")] = ScriptedPages(
            [Page([member_item("proj-a", "vm-1"), member_item("proj-a", "vm-2")])]
        )
        collector = _collector(fake_client, retry=no_retry)
        groups = collector.collect_instance_groups(collector.collect_projects())

        assert collector.enrich_instance_groups(groups) == 2

    def test_malformed_member_keeps_other_groups(self, fake_client, cache, no_retry):
        fake_client.add_project("proj-a", groups=[group_item("proj-a", "web"), group_item("proj-a", "api")])
        fake_client.members[("proj-a", "us-central1-a", "web")] = ScriptedPages(
            [Page([member_item("proj-a", "vm-1")], "t1"), Page([{"status": "RUNNING"}])]
        )
        fake_client.members[("proj-a", "us-central1-a", "api")] = ScriptedPages([Page([member_item("proj-a", "vm-9")])])

        collector = _collector(fake_client, cache, no_retry)
        inventory = collector.refresh()

        groups = {g.name: g for g in inventory.instance_groups}
        assert [m.instance_name for m in groups["web"].members] == ["vm-1"]
        assert [m.instance_name for m in groups["api"].members] == ["vm-9"]

        error = collector.errors.errors[0]
        assert error.resource_id == "us-central1-a/web"
        assert error.error_code == "KeyError"
        assert len(cache.load().instance_groups) == 2
