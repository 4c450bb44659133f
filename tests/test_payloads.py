import json

from fabriclog.models import (
    LogStatus,
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
from fabriclog.payloads import (
    ParseLogRequest,
    ParseLogResponse,
    StoredLogResponse,
    StoredNodeInfoResponse,
    StoredNodeResponse,
    StoredNodesResponse,
    StoredPortResponse,
    StoredPortsResponse,
    TopologyResponse,
)


def test_parse_log_request_default_path():
    assert ParseLogRequest().path == ""


def test_parse_log_response_from_result():
    result = ParseLogResult(
        log_id=101, status=LogStatus.PARSED, nodes_count=2, ports_count=3, nodes_info_count=1
    )
    data = ParseLogResponse.from_result(result).to_dict()
    assert data == {
        "log_id": 101,
        "status": "parsed",
        "nodes_count": 2,
        "ports_count": 3,
        "nodes_info_count": 1,
    }


def test_stored_log_omits_empty_optional_fields():
    log = StoredLog(id=101, file_path="log.zip", status=LogStatus.PARSED, uploaded_at="t0")
    data = StoredLogResponse.from_log(log).to_dict()
    assert "error" not in data
    assert "parsed_at" not in data
    assert data["status"] == "parsed"
    assert data["uploaded_at"] == "t0"


def test_stored_log_keeps_filled_optional_fields():
    log = StoredLog(id=5, status=LogStatus.FAILED, error="boom", parsed_at="t1")
    data = StoredLogResponse.from_log(log).to_dict()
    assert data["error"] == "boom"
    assert data["parsed_at"] == "t1"
    assert data["status"] == "failed"


def test_node_info_none_stays_none():
    assert StoredNodeInfoResponse.from_info(None, True) is None


def test_node_raw_json_requires_include_raw():
    node = Node(
        id=201,
        log_id=101,
        node_guid="node-1",
        raw_json='{"node":"raw"}',
        info=NodeInfo(id=301, node_id=201, raw_json='{"info":"raw"}'),
    )

    hidden = StoredNodeResponse.from_node(node, False).to_dict()
    assert "raw_json" not in hidden
    assert "raw_json" not in hidden["info"]

    shown = StoredNodeResponse.from_node(node, True).to_dict()
    assert shown["raw_json"] == '{"node":"raw"}'
    assert shown["info"]["raw_json"] == '{"info":"raw"}'


def test_node_without_info_omits_info_key():
    data = StoredNodeResponse.from_node(Node(id=201, node_guid="node-1"), True).to_dict()
    assert "info" not in data
    assert data["node_guid"] == "node-1"


def test_port_response_keys():
    port = Port(id=1, node_id=201, node_guid="node-1", port_num=2, raw_json='{"port":1}')
    data = StoredPortResponse.from_port(port, False).to_dict()
    assert set(data) == {
        "id",
        "log_id",
        "node_id",
        "node_guid",
        "port_guid",
        "port_num",
        "lid",
        "local_port_num",
        "port_state",
        "port_phy_state",
        "link_width_active",
        "link_speed_active",
    }
    assert data["port_num"] == 2


def test_ports_page_round_trips_through_json():
    ports = [
        StoredPortResponse.from_port(Port(id=i, node_id=201, port_num=i), True) for i in (1, 2)
    ]
    page = StoredPortsResponse(count=2, total=3, limit=2, offset=1, ports=ports)
    data = json.loads(json.dumps(page.to_dict()))
    assert data["count"] == len(data["ports"])
    assert [port["id"] for port in data["ports"]] == [1, 2]
    assert (data["total"], data["limit"], data["offset"]) == (3, 2, 1)


def test_nodes_response_lists_nodes():
    nodes = [StoredNodeResponse.from_node(Node(id=i), False) for i in (7, 8)]
    data = StoredNodesResponse(count=len(nodes), nodes=nodes).to_dict()
    assert data["count"] == 2
    assert [node["id"] for node in data["nodes"]] == [7, 8]


def test_topology_response_from_topology():
    topology = Topology(
        log_id=101,
        summary=TopologySummary(nodes_count=1, ports_count=1),
        nodes=[TopologyNode(id=201, node_guid="node-1")],
        groups=[TopologyGroup(name="Hosts", kind="host", node_ids=[201])],
        edges=[TopologyEdge(source_node_id=201, target_node_id=202, relation="link")],
    )
    data = TopologyResponse.from_topology(topology).to_dict()

    assert data["log_id"] == 101
    assert data["summary"]["nodes_count"] == 1
    assert data["groups"] == [
        {"name": "Hosts", "kind": "host", "node_ids": [201], "node_guids": []}
    ]
    assert "serial_number" not in data["nodes"][0]
    assert data["edges"][0]["relation"] == "link"
    assert data["edges"][0]["target_node_id"] == 202


def test_topology_node_keeps_filled_inventory():
    topology = Topology(nodes=[TopologyNode(id=1, serial_number="SN-A", product_name="P")])
    node = TopologyResponse.from_topology(topology).to_dict()["nodes"][0]
    assert node["serial_number"] == "SN-A"
    assert node["product_name"] == "P"


def test_empty_topology_has_empty_lists():
    data = TopologyResponse.from_topology(Topology()).to_dict()
    assert data["nodes"] == [] and data["groups"] == [] and data["edges"] == []