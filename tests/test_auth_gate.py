import base64

import pytest
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from fastapi.testclient import TestClient

from file_vault.app.services.auth_gate import parse_basic_authorization, protect
from file_vault.config import Credentials


@pytest.fixture
def gated():
    """A tiny app whose only endpoint counts how often it actually runs."""
    calls = []
    app = FastAPI()

    @app.get("/secret", dependencies=protect(Credentials(username="alice", password="s3cret")))
    async def secret():
        calls.append(1)
        return PlainTextResponse("inner response", headers={"X-Inner": "yes"})

    return TestClient(app), calls


def test_correct_credentials_reach_handler(gated):
    client, calls = gated

    response = client.get("/secret", auth=("alice", "s3cret"))

    assert response.status_code == 200
    assert response.text == "inner response"
    assert response.headers["x-inner"] == "yes"
    assert calls == [1]


@pytest.mark.parametrize("kwargs", [
    {},
    {"auth": ("mallory", "s3cret")},
    {"auth": ("alice", "wrong")},
    {"auth": ("", "")},
    {"headers": {"Authorization": "Basic !!!not-base64"}},
    {"headers": {"Authorization": "Bearer some-token"}},
])
def test_rejected_requests_never_reach_handler(gated, kwargs):
    client, calls = gated

    response = client.get("/secret", **kwargs)

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == 'Basic realm="Restricted"'
    assert calls == []


def test_missing_and_wrong_credentials_look_the_same(gated):
    client, _ = gated

    missing = client.get("/secret")
    wrong = client.get("/secret", auth=("alice", "wrong"))

    assert missing.status_code == wrong.status_code == 401
    assert missing.content == wrong.content


def test_non_ascii_credentials_are_accepted():
    calls = []
    app = FastAPI()

    @app.get("/secret", dependencies=protect(Credentials(username="jürgen", password="pässwort")))
    async def secret():
        calls.append(1)
        return PlainTextResponse("inner response")

    client = TestClient(app)

    assert client.get("/secret", auth=("jürgen", "pässwort")).status_code == 200
    assert client.get("/secret", auth=("jurgen", "pässwort")).status_code == 401
    assert calls == [1]


@pytest.mark.parametrize("header, expected", [
    (None, None),
    ("", None),
    ("Bearer abc", None),
    ("Basic " + base64.b64encode(b"alice:s3cret").decode(), ("alice", "s3cret")),
    ("basic " + base64.b64encode(b"alice:pa:ss").decode(), ("alice", "pa:ss")),
    ("Basic " + base64.b64encode("jürgen:pässwort".encode("utf-8")).decode(), ("jürgen", "pässwort")),
    ("Basic " + base64.b64encode(b"no-separator").decode(), None),
    ("Basic " + base64.b64encode(b"\xff\xfe:x").decode(), None),
    ("Basic !!!not-base64", None),
])
def test_parse_basic_authorization(header, expected):
    assert parse_basic_authorization(header) == expected
