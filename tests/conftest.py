"""Pytest configuration and fixtures for wafctl tests."""
import json

import httpx
import pytest

from mock_waf import main as mock_waf
from wafctl.client import SucuriClient


@pytest.fixture(autouse=True)
def reset_request_id():
    """Reset request ID context between tests."""
    from wafctl.utils import request_id_var
    token = request_id_var.set("")
    yield
    request_id_var.reset(token)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep tests away from real config files and environment settings."""
    for key in (
        "CONFIG_FILE", "SUCURI_API_URL", "SUCURI_TIMEOUT", "SUCURI_MAX_RETRIES",
        "SUCURI_CONCURRENCY", "SUCURI_MAX_SUBNET_HOSTS", "LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def no_backoff(mocker):
    """Retry without sleeping."""
    mocker.patch.object(SucuriClient, "INITIAL_BACKOFF", 0)


@pytest.fixture
def write_json(tmp_path):
    """Write a JSON document to a temporary file and return its path."""
    def _write(name, data):
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return str(path)
    return _write


@pytest.fixture
def mock_api():
    """Fresh mock WAF API with one site: example.com (test-key / test-secret)."""
    mock_waf.reset_state({"test-key": {"test-secret": "example.com"}})
    yield mock_waf
    mock_waf.reset_state()


@pytest.fixture
def mock_transport(mock_api):
    """httpx transport that routes requests to the mock WAF API."""
    return httpx.ASGITransport(app=mock_api.app)


@pytest.fixture
def site_state(mock_api):
    """State of example.com in the mock API."""
    return mock_api.sites["example.com"]
