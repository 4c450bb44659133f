"""Domain records of the API service."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class LogStatus(str, Enum):
    """Processing state of a stored log."""

    PROCESSING = "processing"
    PARSED = "parsed"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


@dataclass
class StoredLog:
    """A log as recorded by the repository."""

    id: int = 0
    file_path: str = ""
    status: LogStatus | str = ""
    nodes_count: int = 0
    ports_count: int = 0
    error: str = ""
    uploaded_at: str = ""
    parsed_at: str = ""


@dataclass
class NodeInfo:
    """Stored inventory details of a node."""

    id: int = 0
    node_id: int = 0
    node_guid: str = ""
    serial_number: str = ""
    part_number: str = ""
    revision: str = ""
    product_name: str = ""
    raw_json: str = ""


@dataclass
class Node:
    """A stored node."""

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
    info: NodeInfo | None = None
    raw_json: str = ""


@dataclass
class Port:
    """A stored port."""

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


@dataclass
class ParseLogResult:
    """Outcome of parsing and storing one log."""

    log_id: int = 0
    status: LogStatus | str = ""
    nodes_count: int = 0
    ports_count: int = 0
    nodes_info_count: int = 0


@dataclass
class SaveParsedLogResult:
    """What the repository reports after storing a parsed log."""

    log_id: int = 0
    nodes_count: int = 0
    ports_count: int = 0


@dataclass
class TopologySummary:
    """Counts describing a topology."""

    nodes_count: int = 0
    ports_count: int = 0
    edges_count: int = 0
    hosts_count: int = 0
    switches_count: int = 0


@dataclass
class TopologyNode:
    """A node as seen in a topology."""

    id: int = 0
    log_id: int = 0
    node_guid: str = ""
    node_desc: str = ""
    node_type: int = 0
    node_kind: str = ""
    declared_ports_count: int = 0
    parsed_ports_count: int = 0
    serial_number: str = ""
    product_name: str = ""


@dataclass
class TopologyGroup:
    """A named group of topology nodes."""

    name: str = ""
    kind: str = ""
    node_ids: list[int] = field(default_factory=list)
    node_guids: list[str] = field(default_factory=list)


@dataclass
class TopologyEdge:
    """A link between two ports in a topology."""

    source_node_id: int = 0
    source_node_guid: str = ""
    source_port_num: int = 0
    source_port_guid: str = ""
    target_node_id: int = 0
    target_node_guid: str = ""
    target_port_num: int = 0
    target_port_guid: str = ""
    relation: str = ""
    link_width_active: int = 0
    link_speed_active: int = 0
    port_state: int = 0


@dataclass
class Topology:
    """The fabric topology built from one log."""

    log_id: int = 0
    summary: TopologySummary = field(default_factory=TopologySummary)
    nodes: list[TopologyNode] = field(default_factory=list)
    groups: list[TopologyGroup] = field(default_factory=list)
    edges: list[TopologyEdge] = field(default_factory=list)