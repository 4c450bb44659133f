"""Request and response bodies of the HTTP API."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from fabriclog.models import (
    Node,
    NodeInfo,
    ParseLogResult,
    Port,
    StoredLog,
    Topology,
    TopologyEdge,
    TopologyGroup,
    TopologyNode,
    TopologySummary,
)


def _status_text(status: Any) -> str:
    return status.value if isinstance(status, Enum) else str(status)


def _shallow(obj: Any, omit_empty: Iterable[str] = ()) -> dict[str, Any]:
    omitted = set(omit_empty)
    return {
        f.name: getattr(obj, f.name)
        for f in dataclasses.fields(obj)
        if not (f.name in omitted and not getattr(obj, f.name))
    }


@dataclass
class ParseLogRequest:
    """Body of a parse request."""

    path: str = ""


@dataclass
class ParseLogResponse:
    """Body answering a successful parse request."""

    log_id: int = 0
    status: str = ""
    nodes_count: int = 0
    ports_count: int = 0
    nodes_info_count: int = 0

    @classmethod
    def from_result(cls, result: ParseLogResult) -> ParseLogResponse:
        return cls(
            log_id=result.log_id,
            status=_status_text(result.status),
            nodes_count=result.nodes_count,
            ports_count=result.ports_count,
            nodes_info_count=result.nodes_info_count,
        )

    def to_dict(self) -> dict[str, Any]:
        return _shallow(self)


@dataclass
class StoredLogResponse:
    """A stored log as shown by the API."""

    id: int = 0
    file_path: str = ""
    status: str = ""
    nodes_count: int = 0
    ports_count: int = 0
    error: str = ""
    uploaded_at: str = ""
    parsed_at: str = ""

    @classmethod
    def from_log(cls, log: StoredLog) -> StoredLogResponse:
        return cls(
            id=log.id,
            file_path=log.file_path,
            status=_status_text(log.status),
            nodes_count=log.nodes_count,
            ports_count=log.ports_count,
            error=log.error,
            uploaded_at=log.uploaded_at,
            parsed_at=log.parsed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return _shallow(self, ("error", "parsed_at"))


@dataclass
class StoredNodeInfoResponse:
    """Stored node inventory details as shown by the API."""

    id: int = 0
    node_id: int = 0
    node_guid: str = ""
    serial_number: str = ""
    part_number: str = ""
    revision: str = ""
    product_name: str = ""
    raw_json: str = ""

    @classmethod
    def from_info(
        cls, info: NodeInfo | None, include_raw: bool
    ) -> StoredNodeInfoResponse | None:
        if info is None:
            return None
        return cls(
            id=info.id,
            node_id=info.node_id,
            node_guid=info.node_guid,
            serial_number=info.serial_number,
            part_number=info.part_number,
            revision=info.revision,
            product_name=info.product_name,
            raw_json=info.raw_json if include_raw else "",
        )

    def to_dict(self) -> dict[str, Any]:
        return _shallow(self, ("raw_json",))


@dataclass
class StoredNodeResponse:
    """A stored node as shown by the API."""

    id: int = 0
    log_id: int = 0
    node_guid: str = ""
    node_desc: str = ""
    node_type: int = 0
    node_kind: str = ""
    num_ports: int = 0
    class_version: int = 0
    base_version: int = 0
    system_image_guid: str = ""
    port_guid: str = ""
    info: StoredNodeInfoResponse | None = None
    raw_json: str = ""

    @classmethod
    def from_node(cls, node: Node, include_raw: bool) -> StoredNodeResponse:
        return cls(
            id=node.id,
            log_id=node.log_id,
            node_guid=node.node_guid,
            node_desc=node.node_desc,
            node_type=node.node_type,
            node_kind=node.node_kind,
            num_ports=node.num_ports,
            class_version=node.class_version,
            base_version=node.base_version,
            system_image_guid=node.system_image_guid,
            port_guid=node.port_guid,
            info=StoredNodeInfoResponse.from_info(node.info, include_raw),
            raw_json=node.raw_json if include_raw else "",
        )

    def to_dict(self) -> dict[str, Any]:
        data = _shallow(self, ("info", "raw_json"))
        if self.info is not None:
            data["info"] = self.info.to_dict()
        return data


@dataclass
class StoredPortResponse:
    """A stored port as shown by the API."""

    id: int = 0
    log_id: int = 0
    node_id: int = 0
    node_guid: str = ""
    port_guid: str = ""
    port_num: int = 0
    lid: int = 0
    local_port_num: int = 0
    port_state: int = 0
    port_phy_state: int = 0
    link_width_active: int = 0
    link_speed_active: int = 0
    raw_json: str = ""

    @classmethod
    def from_port(cls, port: Port, include_raw: bool) -> StoredPortResponse:
        return cls(
            id=port.id,
            log_id=port.log_id,
            node_id=port.node_id,
            node_guid=port.node_guid,
            port_guid=port.port_guid,
            port_num=port.port_num,
            lid=port.lid,
            local_port_num=port.local_port_num,
            port_state=port.port_state,
            port_phy_state=port.port_phy_state,
            link_width_active=port.link_width_active,
            link_speed_active=port.link_speed_active,
            raw_json=port.raw_json if include_raw else "",
        )

    def to_dict(self) -> dict[str, Any]:
        return _shallow(self, ("raw_json",))


@dataclass
class StoredNodesResponse:
    """A list of stored nodes."""

    count: int = 0
    nodes: list[StoredNodeResponse] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "nodes": [node.to_dict() for node in self.nodes]}


@dataclass
class StoredPortsResponse:
    """One page of stored ports."""

    count: int = 0
    total: int = 0
    limit: int = 0
    offset: int = 0
    ports: list[StoredPortResponse] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "total": self.total,
            "limit": self.limit,
            "offset": self.offset,
            "ports": [port.to_dict() for port in self.ports],
        }


@dataclass
class TopologyResponse:
    """The topology of a log as shown by the API."""

    log_id: int = 0
    summary: TopologySummary = field(default_factory=TopologySummary)
    nodes: list[TopologyNode] = field(default_factory=list)
    groups: list[TopologyGroup] = field(default_factory=list)
    edges: list[TopologyEdge] = field(default_factory=list)

    @classmethod
    def from_topology(cls, topology: Topology) -> TopologyResponse:
        return cls(
            log_id=topology.log_id,
            summary=dataclasses.replace(topology.summary),
            nodes=[dataclasses.replace(node) for node in topology.nodes],
            groups=[dataclasses.replace(group) for group in topology.groups],
            edges=[dataclasses.replace(edge) for edge in topology.edges],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "log_id": self.log_id,
            "summary": _shallow(self.summary),
            "nodes": [
                _shallow(node, ("serial_number", "product_name")) for node in self.nodes
            ],
            "groups": [
                {
                    "name": group.name,
                    "kind": group.kind,
                    "node_ids": list(group.node_ids),
                    "node_guids": list(group.node_guids),
                }
                for group in self.groups
            ],
            "edges": [_shallow(edge) for edge in self.edges],
        }