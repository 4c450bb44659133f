"""Records produced by parsing a fabric log."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ParsedNode:
    """A node found in a log."""

    node_guid: str = ""
    node_desc: str = ""
    node_type: int = 0
    node_kind: str = ""
    num_ports: int = 0
    class_version: int = 0
    base_version: int = 0
    system_image_guid: str = ""
    port_guid: str = ""
    raw_json: str = ""


@dataclass
class ParsedPort:
    """A port found in a log."""

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
class ParsedNodeInfo:
    """Inventory details of a node found in a log."""

    node_guid: str = ""
    serial_number: str = ""
    part_number: str = ""
    revision: str = ""
    product_name: str = ""
    raw_json: str = ""


@dataclass
class ParsedLog:
    """Everything parsed from one log source."""

    nodes: list[ParsedNode] = field(default_factory=list)
    ports: list[ParsedPort] = field(default_factory=list)
    nodes_info: list[ParsedNodeInfo] = field(default_factory=list)

    def extend(self, other: ParsedLog) -> None:
        """Append the records of another parsed log to this one."""
        self.nodes.extend(other.nodes)
        self.ports.extend(other.ports)
        self.nodes_info.extend(other.nodes_info)