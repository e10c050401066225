"""Tests for the static page server."""

import threading
import urllib.error
import urllib.request

import pytest

from aistory.webui.server import create_server


@pytest.fixture
def base_url():
    server = create_server("127.0.0.1", 0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


def fetch(url):
    with urllib.request.urlopen(url, timeout=5) as response:
        return response.status, response.read().decode("utf-8")


def test_serves_index(base_url):
    status, body = fetch(base_url + "/")
    assert status == 200
    assert "story.js" in body


def test_serves_script(base_url):
    status, body = fetch(base_url + "/story.js")
    assert status == 200
    assert "localStorage" in body


def test_other_paths_are_not_found(base_url):
    with pytest.raises(urllib.error.HTTPError) as excinfo:
        fetch(base_url + "/server.py")
    assert excinfo.value.code == 404
