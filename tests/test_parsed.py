from fabriclog.parsed import ParsedLog, ParsedNode, ParsedNodeInfo, ParsedPort


def test_extend_appends_all_record_kinds_in_order():
    first = ParsedLog(
        nodes=[ParsedNode(node_guid="a")],
        ports=[ParsedPort(node_guid="a", port_num=1)],
    )
    second = ParsedLog(
        nodes=[ParsedNode(node_guid="b")],
        ports=[ParsedPort(node_guid="b", port_num=2)],
        nodes_info=[ParsedNodeInfo(node_guid="b", serial_number="SN-b")],
    )

    first.extend(second)

    assert [n.node_guid for n in first.nodes] == ["a", "b"]
    assert [p.port_num for p in first.ports] == [1, 2]
    assert [i.serial_number for i in first.nodes_info] == ["SN-b"]


def test_extend_with_empty_log_changes_nothing():
    log = ParsedLog(nodes=[ParsedNode(node_guid="a")])
    log.extend(ParsedLog())
    assert log == ParsedLog(nodes=[ParsedNode(node_guid="a")])


def test_default_logs_do_not_share_lists():
    one = ParsedLog()
    two = ParsedLog()
    one.nodes.append(ParsedNode(node_guid="x"))
    assert two.nodes == []
    assert len(one.nodes) == 1