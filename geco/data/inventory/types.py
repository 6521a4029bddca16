"""
geco/data/inventory/types.py - Inventory dataclasses

Entities parse from and serialize to the field names the Google APIs use,
so cached documents look like API resources.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


def last_segment(url: str) -> str:
    """Last path segment of a resource URL (zone, machine type, ...)"""
    return url.rstrip("/").rsplit("/", 1)[-1] if url else ""


def project_from_link(self_link: str) -> str:
    """Project ID from a ``.../projects/<id>/...`` resource URL"""
    if "/projects/" not in self_link:
        return ""
    return self_link.split("/projects/", 1)[1].split("/", 1)[0]


@dataclass
class Project:
    """Cloud project"""

    project_id: str
    name: str = ""
    project_number: int = 0
    lifecycle_state: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Project:
        return cls(
            project_id=data["projectId"],
            name=data.get("name", ""),
            project_number=int(data.get("projectNumber") or 0),
            lifecycle_state=data.get("lifecycleState", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "projectId": self.project_id,
            "name": self.name,
            "projectNumber": str(self.project_number),
            "lifecycleState": self.lifecycle_state,
        }


@dataclass
class AccessConfig:
    """External access configuration of a network interface"""

    name: str = ""
    type: str = ""
    nat_ip: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> AccessConfig:
        return cls(name=data.get("name", ""), type=data.get("type", ""), nat_ip=data.get("natIP", ""))

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type, "natIP": self.nat_ip}


@dataclass
class NetworkInterface:
    """VM network interface"""

    name: str = ""
    network: str = ""
    network_ip: str = ""
    access_configs: list[AccessConfig] = field(default_factory=list)

    @property
    def external_ip(self) -> str:
        return self.access_configs[0].nat_ip if self.access_configs else ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> NetworkInterface:
        return cls(
            name=data.get("name", ""),
            network=data.get("network", ""),
            network_ip=data.get("networkIP", ""),
            access_configs=[AccessConfig.from_api(a) for a in data.get("accessConfigs", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "network": self.network,
            "networkIP": self.network_ip,
            "accessConfigs": [a.to_dict() for a in self.access_configs],
        }


@dataclass
class Instance:
    """VM instance

    ``self_link`` is the identity and sort key; the owning project is
    derived from it.
    """

    name: str
    self_link: str
    zone: str = ""
    machine_type: str = ""
    status: str = ""
    network_interfaces: list[NetworkInterface] = field(default_factory=list)

    @property
    def project_id(self) -> str:
        return project_from_link(self.self_link)

    @property
    def zone_name(self) -> str:
        return last_segment(self.zone)

    @property
    def machine_type_name(self) -> str:
        return last_segment(self.machine_type)

    @property
    def internal_ip(self) -> str:
        return self.network_interfaces[0].network_ip if self.network_interfaces else ""

    @property
    def external_ip(self) -> str:
        return self.network_interfaces[0].external_ip if self.network_interfaces else ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Instance:
        return cls(
            name=data["name"],
            self_link=data["selfLink"],
            zone=data.get("zone", ""),
            machine_type=data.get("machineType", ""),
            status=data.get("status", ""),
            network_interfaces=[NetworkInterface.from_api(n) for n in data.get("networkInterfaces", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "selfLink": self.self_link,
            "zone": self.zone,
            "machineType": self.machine_type,
            "status": self.status,
            "networkInterfaces": [n.to_dict() for n in self.network_interfaces],
        }


@dataclass
class NamedPort:
    name: str
    port: int

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> NamedPort:
        return cls(name=data.get("name", ""), port=int(data.get("port", 0)))

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "port": self.port}


@dataclass
class InstanceGroupMember:
    """Instance group member: an instance with its named port bindings"""

    instance: str
    status: str = ""
    named_ports: list[NamedPort] = field(default_factory=list)

    @property
    def instance_name(self) -> str:
        return last_segment(self.instance)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> InstanceGroupMember:
        return cls(
            instance=data["instance"],
            status=data.get("status", ""),
            named_ports=[NamedPort.from_api(p) for p in data.get("namedPorts", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "instance": self.instance,
            "status": self.status,
            "namedPorts": [p.to_dict() for p in self.named_ports],
        }


@dataclass
class InstanceGroup:
    """Instance group, tagged with its owning project

    ``members`` is filled by the enrichment phase after the group itself
    has been listed.
    """

    name: str
    project_id: str
    zone: str = ""
    self_link: str = ""
    size: int = 0
    members: list[InstanceGroupMember] = field(default_factory=list)

    @property
    def zone_name(self) -> str:
        return last_segment(self.zone)

    @classmethod
    def from_api(cls, data: dict[str, Any], project_id: str = "") -> InstanceGroup:
        self_link = data.get("selfLink", "")
        return cls(
            name=data["name"],
            project_id=data.get("projectId") or project_id or project_from_link(self_link),
            zone=data.get("zone", ""),
            self_link=self_link,
            size=int(data.get("size", 0)),
            members=[InstanceGroupMember.from_api(m) for m in data.get("members", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "projectId": self.project_id,
            "zone": self.zone,
            "selfLink": self.self_link,
            "size": self.size,
            "members": [m.to_dict() for m in self.members],
        }


@dataclass
class Inventory:
    """One refresh cycle's snapshot, plus where it is persisted"""

    projects: list[Project] = field(default_factory=list)
    instances: list[Instance] = field(default_factory=list)
    instance_groups: list[InstanceGroup] = field(default_factory=list)
    cache_dir: Path | None = None

    def sort(self) -> None:
        """Order projects by ID and instances by self-link, dropping duplicates

        Instance groups keep their merge order.
        """
        self.projects = _unique_sorted(self.projects, key=lambda p: p.project_id)
        self.instances = _unique_sorted(self.instances, key=lambda i: i.self_link)

    @property
    def counts(self) -> dict[str, int]:
        return {
            "projects": len(self.projects),
            "instances": len(self.instances),
            "instance_groups": len(self.instance_groups),
        }


def _unique_sorted(items: list[Any], key: Any) -> list[Any]:
    """Stable sort by key keeping the first item of each key"""
    seen: set[str] = set()
    unique = []
    for item in sorted(items, key=key):
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        unique.append(item)
    return unique
