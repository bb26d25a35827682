import json

import pytest
import requests


def _make_response(status=200, json_body=None, content=None, content_type="application/json"):
    r = requests.Response()
    r.status_code = status
    if json_body is not None:
        r._content = json.dumps(json_body).encode("utf-8")
    else:
        r._content = content if content is not None else b""
    r.headers["Content-Type"] = content_type
    r.encoding = "utf-8"
    return r


class FakeSession:
    """Stands in for requests.Session: replays outcomes, records every post()."""

    def __init__(self, outcomes, on_post=None):
        self.outcomes = list(outcomes)
        self.calls = []
        self.on_post = on_post

    def post(self, url, **kwargs):
        call = {"url": url, **kwargs}
        data = kwargs.get("data")
        if data is not None and hasattr(data, "read"):
            call["body_bytes"] = data.read()
        self.calls.append(call)
        if self.on_post is not None:
            self.on_post(len(self.calls))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def make_response():
    return _make_response


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def write_file(tmp_path):
    def _write(name, data=b"\x00\x01data"):
        p = tmp_path / name
        p.write_bytes(data)
        return p
    return _write
