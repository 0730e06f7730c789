# tests/unit/fetch/conftest.py
# Shared fixtures for the fetch layer. Fakes live in http_fakes.py.

import json

import pytest
import requests

from http_fakes import FakeResponse, FakeSession


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection refused")


@pytest.fixture
def json_response():
    def _make(payload, status_code=200):
        return FakeResponse(status_code=status_code, body=json.dumps(payload).encode("utf-8"))
    return _make
