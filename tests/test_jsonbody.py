import json
from dataclasses import dataclass

import pytest
from werkzeug.test import EnvironBuilder
from werkzeug.wrappers import Request

from fabriclog.jsonbody import (
    DecodeError,
    EmptyBodyError,
    RequestBodyError,
    decode,
    json_response,
    read_body,
)


@dataclass
class _Payload:
    path: str = ""


def _request(body: bytes) -> Request:
    return Request(EnvironBuilder(method="POST", data=body).get_environ())


def test_decode_valid_json():
    got = decode(b'{"path":"log.zip"}', _Payload)
    assert got.path == "log.zip"


@pytest.mark.parametrize(
    "body",
    [
        '{"path":"log.zip","extra":1}',
        '{"path":"log.zip"}{"path":"other.zip"}',
        '{"path":',
    ],
)
def test_decode_rejects_invalid_bodies(body):
    with pytest.raises(DecodeError):
        decode(body, _Payload)


@pytest.mark.parametrize("body", [b"", b"  \n\t"])
def test_decode_empty_body(body):
    with pytest.raises(EmptyBodyError):
        decode(body, _Payload)


def test_empty_body_error_is_decode_error():
    with pytest.raises(DecodeError):
        decode("", _Payload)


def test_decode_null_gives_default_payload():
    assert decode("null", _Payload) == _Payload()


def test_decode_matches_keys_case_insensitively():
    assert decode('{"PATH":"a.log"}', _Payload).path == "a.log"


def test_decode_trailing_whitespace_is_allowed():
    assert decode('{"path":"x"}  \n', _Payload).path == "x"


@pytest.mark.parametrize("body", ['{"path":1}', "[1]", '"text"'])
def test_decode_rejects_wrong_types(body):
    with pytest.raises(DecodeError):
        decode(body, _Payload)


def test_read_body_returns_payload():
    got = read_body(_request(b'{"path":"log.zip"}'), _Payload, 1 << 20)
    assert got.path == "log.zip"


def test_read_body_without_limit():
    got = read_body(_request(b'{"path":"log.zip"}'), _Payload, None)
    assert got.path == "log.zip"


def test_read_body_rejects_large_body():
    limit = 1 << 20
    body = ('{"path":"' + "x" * limit + '"}').encode()
    with pytest.raises(RequestBodyError) as info:
        read_body(_request(body), _Payload, limit)
    assert info.value.status_code == 413
    assert info.value.response.status_code == 413
    assert json.loads(info.value.response.get_data()) == {"error": "request body is too large"}


@pytest.mark.parametrize("body", [b'{"path":', b"", b'{"path":"a","other":2}'])
def test_read_body_rejects_invalid_body(body):
    with pytest.raises(RequestBodyError) as info:
        read_body(_request(body), _Payload, 1 << 20)
    assert info.value.status_code == 400
    assert json.loads(info.value.response.get_data()) == {"error": "invalid request body"}


def test_json_response_encodes_data():
    response = json_response({"path": "log.zip"}, 201)
    assert response.status_code == 201
    assert response.headers["Content-Type"] == "application/json"
    body = response.get_data()
    assert body.endswith(b"\n")
    assert json.loads(body) == {"path": "log.zip"}


def test_json_response_escapes_html():
    response = json_response({"error": "<b>&"}, 400)
    body = response.get_data()
    assert b"<" not in body and b"&" not in body
    assert json.loads(body) == {"error": "<b>&"}


def test_json_response_uses_to_dict():
    class _Item:
        def to_dict(self):
            return {"count": 3}

    assert json.loads(json_response(_Item(), 200).get_data()) == {"count": 3}