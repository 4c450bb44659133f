import logging

import pytest

from fabriclog.errors import BadArgumentsError, ConflictError, NotFoundError
from fabriclog.models import (
    LogStatus,
    Node,
    ParseLogResult,
    Port,
    SaveParsedLogResult,
    StoredLog,
    Topology,
    TopologySummary,
)
from fabriclog.parsed import ParsedLog, ParsedNode, ParsedNodeInfo, ParsedPort
from fabriclog.service import AppService


class FakeRepository:
    def __init__(self, calls, create_log_id=0, save_result=None, save_error=None,
                 fail_error=None, log_error=None):
        self.calls = calls
        self.create_log_id = create_log_id
        self.save_result = save_result or SaveParsedLogResult()
        self.save_error = save_error
        self.fail_error = fail_error
        self.log_error = log_error
        self.fail_log_calls = []

    def ping(self):
        return None

    def create_log(self, file_path):
        self.calls.append(f"CreateLog:{file_path}")
        return self.create_log_id

    def save_parsed_log(self, log_id, parsed):
        self.calls.append(f"SaveParsedLog:{log_id}")
        if self.save_error is not None:
            raise self.save_error
        return self.save_result

    def fail_log(self, log_id, error_text, *, timeout=None):
        self.fail_log_calls.append((log_id, error_text, timeout))
        if self.fail_error is not None:
            raise self.fail_error

    def get_log(self, log_id):
        self.calls.append(f"GetLog:{log_id}")
        if self.log_error is not None:
            raise self.log_error
        return StoredLog(id=log_id)

    def get_node(self, node_id):
        self.calls.append(f"GetNode:{node_id}")
        return Node(id=node_id)

    def get_ports_by_node(self, node_id):
        self.calls.append(f"GetPortsByNode:{node_id}")
        return [Port(node_id=node_id)]

    def get_nodes_by_log(self, log_id):
        self.calls.append(f"GetNodesByLog:{log_id}")
        return [Node(log_id=log_id)]

    def get_ports_by_log(self, log_id):
        self.calls.append(f"GetPortsByLog:{log_id}")
        return [Port(log_id=log_id)]


class FakeParser:
    def __init__(self, calls, parsed=None, error=None):
        self.calls = calls
        self.parsed = parsed if parsed is not None else ParsedLog()
        self.error = error

    def ping(self):
        return None

    def parse(self, path):
        self.calls.append(f"Parse:{path}")
        if self.error is not None:
            raise self.error
        return self.parsed


class FakeTopology:
    def __init__(self, topology=None):
        self.topology = topology or Topology()

    def ping(self):
        return None

    def get_topology(self, log_id):
        return self.topology


LOGGER = logging.getLogger("test.service")


def make(repo=None, parser=None, topology=None, calls=None):
    calls = calls if calls is not None else []
    repo = repo or FakeRepository(calls)
    parser = parser or FakeParser(calls)
    return AppService(LOGGER, repo, parser, topology or FakeTopology())


def test_parse_log_rejects_empty_path():
    with pytest.raises(BadArgumentsError):
        make().parse_log(" ")


def test_parse_log_success_flow():
    calls = []
    parsed = ParsedLog(
        nodes=[ParsedNode(node_guid="node-1")],
        ports=[ParsedPort(node_guid="node-1", port_guid="port-1")],
        nodes_info=[ParsedNodeInfo(node_guid="node-1"), ParsedNodeInfo(node_guid="node-2")],
    )
    repo = FakeRepository(
        calls, create_log_id=101,
        save_result=SaveParsedLogResult(log_id=101, nodes_count=1, ports_count=1),
    )
    parser = FakeParser(calls, parsed=parsed)

    got = make(repo, parser, calls=calls).parse_log(" log.zip ")

    assert got == ParseLogResult(
        log_id=101, status=LogStatus.PARSED, nodes_count=1, ports_count=1, nodes_info_count=2
    )
    assert calls == ["CreateLog:log.zip", "Parse:log.zip", "SaveParsedLog:101"]
    assert repo.fail_log_calls == []


def test_parse_log_fails_log_when_parser_fails():
    calls = []
    error = RuntimeError("parse failed")
    repo = FakeRepository(calls, create_log_id=101)
    parser = FakeParser(calls, error=error)

    with pytest.raises(RuntimeError) as info:
        make(repo, parser, calls=calls).parse_log("log.zip")

    assert info.value is error
    assert len(repo.fail_log_calls) == 1
    log_id, text, _ = repo.fail_log_calls[0]
    assert (log_id, text) == (101, "parse failed")


def test_parse_log_fails_log_when_save_fails():
    calls = []
    error = RuntimeError("save failed")
    repo = FakeRepository(calls, create_log_id=101, save_error=error)
    parser = FakeParser(calls, parsed=ParsedLog(nodes=[ParsedNode(node_guid="node-1")]))

    with pytest.raises(RuntimeError) as info:
        make(repo, parser, calls=calls).parse_log("log.zip")

    assert info.value is error
    assert len(repo.fail_log_calls) == 1
    log_id, text, _ = repo.fail_log_calls[0]
    assert (log_id, text) == (101, "save failed")


def test_mark_failed_uses_its_own_timeout():
    repo = FakeRepository([])
    make(repo=repo).mark_failed(101, RuntimeError("parse failed"))

    assert len(repo.fail_log_calls) == 1
    log_id, text, timeout = repo.fail_log_calls[0]
    assert (log_id, text) == (101, "parse failed")
    assert timeout == 5.0


def test_mark_failed_ignores_missing_log_id():
    repo = FakeRepository([])
    make(repo=repo).mark_failed(0, RuntimeError("parse failed"))
    assert repo.fail_log_calls == []


def test_mark_failed_swallows_conflict(caplog):
    caplog.set_level(logging.DEBUG, logger="test.service")
    repo = FakeRepository([], fail_error=ConflictError())
    make(repo=repo).mark_failed(101, RuntimeError("parse failed"))

    assert len(repo.fail_log_calls) == 1
    assert any("already finalized" in r.getMessage() for r in caplog.records)


def test_mark_failed_logs_other_errors(caplog):
    caplog.set_level(logging.DEBUG, logger="test.service")
    repo = FakeRepository([], fail_error=RuntimeError("down"))
    make(repo=repo).mark_failed(101, RuntimeError("parse failed"))

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "failed to mark log as failed" in warnings[0].getMessage()


def test_get_topology():
    service = make(topology=FakeTopology(
        Topology(log_id=101, summary=TopologySummary(nodes_count=1))
    ))

    with pytest.raises(BadArgumentsError):
        service.get_topology(0)

    got = service.get_topology(101)
    assert got.log_id == 101
    assert got.summary.nodes_count == 1


@pytest.mark.parametrize(
    "method", ["get_log", "get_node", "get_nodes_by_log", "get_ports_by_log", "get_ports_by_node"]
)
def test_getters_reject_non_positive_ids(method):
    calls = []
    service = make(calls=calls)
    with pytest.raises(BadArgumentsError):
        getattr(service, method)(-1)
    assert calls == []


def test_get_nodes_by_log_checks_log_first():
    calls = []
    service = make(calls=calls)
    nodes = service.get_nodes_by_log(7)
    assert nodes == [Node(log_id=7)]
    assert calls == ["GetLog:7", "GetNodesByLog:7"]


def test_get_ports_by_log_propagates_missing_log():
    calls = []
    repo = FakeRepository(calls, log_error=NotFoundError())
    with pytest.raises(NotFoundError):
        make(repo=repo, calls=calls).get_ports_by_log(7)
    assert calls == ["GetLog:7"]


def test_get_ports_by_node_checks_node_first():
    calls = []
    ports = make(calls=calls).get_ports_by_node(3)
    assert ports == [Port(node_id=3)]
    assert calls == ["GetNode:3", "GetPortsByNode:3"]