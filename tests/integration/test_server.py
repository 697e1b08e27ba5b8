import os

import pytest
from fastapi.testclient import TestClient

from screenshot_analyzer import server
from screenshot_analyzer.server import create_app


class FakeProvider:
    def __init__(self, answer='```json\n{"activity name": "Lunch Ride"}\n```'):
        self.answer = answer
        self.urls = []

    async def call_image(self, cfg, image_url, prompt):
        self.urls.append(image_url)
        return self.answer

    def check_balance(self, cfg):
        return {}


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def client(settings, provider):
    return TestClient(create_app(settings, provider=provider))


@pytest.fixture
def user_folder(settings, make_image):
    folder = os.path.join(settings.images_dir, "alice")
    make_image(os.path.join(folder, "1.png"), 30, 60)
    make_image(os.path.join(folder, "2.png"), 50, 40)
    return folder


def test_list_images(client, user_folder):
    resp = client.get("/api/images", params={"userId": "alice"})
    assert resp.status_code == 200
    assert resp.json()["images"] == ["/images/alice/1.png", "/images/alice/2.png"]


def test_list_requires_user(client):
    resp = client.get("/api/images")
    assert resp.status_code == 400
    assert resp.json()["message"] == "User ID is required"


def test_static_images_served(client, user_folder):
    resp = client.get("/images/alice/1.png")
    assert resp.status_code == 200
    assert resp.content[:8] == b"\x89PNG\r\n\x1a\n"


def test_process_merged_then_fetch_results(client, provider, user_folder):
    resp = client.post("/api/images", params={"userId": "alice", "format": "png", "margin": 0})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    entry = body["data"]["alice"][0]
    assert entry["image"] == "merged/merged-images.png"
    assert entry["sources"] == ["1.png", "2.png"]
    assert entry["analysis"] == {"activity name": "Lunch Ride"}
    assert len(provider.urls) == 1

    resp = client.get("/api/results", params={"userId": "alice"})
    assert resp.status_code == 200
    assert resp.json()["data"]["alice"] == body["data"]["alice"]


def test_process_per_image(client, provider, user_folder):
    resp = client.post("/api/images", params={"userId": "alice", "merge": "false"})
    assert resp.status_code == 200
    assert [e["image"] for e in resp.json()["data"]["alice"]] == ["1.png", "2.png"]
    assert len(provider.urls) == 2


def test_process_unknown_user(client):
    resp = client.post("/api/images", params={"userId": "bob"})
    assert resp.status_code == 404


def test_process_rejects_bad_options(client, user_folder):
    resp = client.post("/api/images", params={"userId": "alice", "direction": "diagonal"})
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Invalid merge options")


def test_process_without_key(settings, user_folder):
    settings.api_key = None
    client = TestClient(create_app(settings))
    resp = client.post("/api/images", params={"userId": "alice"})
    assert resp.status_code == 500
    assert resp.json()["message"] == "OpenAI API key not configured"


def test_merge_route(client, provider, settings, user_folder):
    resp = client.post("/api/images/merge", params={"userId": "alice", "direction": "horizontal", "margin": 4})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert os.path.isfile(body["outputPath"])
    assert provider.urls == []


def test_results_missing(client):
    resp = client.get("/api/results", params={"userId": "carol"})
    assert resp.status_code == 404


@pytest.mark.parametrize("path", ["/api/images", "/api/images/merge"])
def test_non_numeric_options_use_the_400_contract(client, user_folder, path):
    resp = client.post(path, params={"userId": "alice", "margin": "wide"})
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Invalid merge options")


def test_provider_built_once_per_app(settings, user_folder, monkeypatch):
    built = []

    class CountingProvider(FakeProvider):
        def __init__(self):
            super().__init__()
            built.append(self)

    monkeypatch.setattr(server, "OpenAIProvider", CountingProvider)
    client = TestClient(create_app(settings))
    for _ in range(2):
        assert client.post("/api/images", params={"userId": "alice"}).status_code == 200
    assert len(built) == 1
    assert len(built[0].urls) == 2


def test_main_runs_uvicorn(monkeypatch):
    calls = {}
    monkeypatch.setenv("SERVER_HOST", "0.0.0.0")
    monkeypatch.setenv("SERVER_PORT", "9001")
    monkeypatch.setattr(server.uvicorn, "run", lambda target, **kw: calls.update(target=target, **kw))
    server.main()
    assert calls == {"target": "screenshot_analyzer.server:app", "host": "0.0.0.0", "port": 9001}


def test_main_rejects_bad_port(monkeypatch):
    monkeypatch.setenv("SERVER_PORT", "eighty")
    with pytest.raises(SystemExit):
        server.main()


def test_corrupt_results_file_gives_json_error(client, settings):
    os.makedirs(settings.data_dir)
    with open(os.path.join(settings.data_dir, "alice-results.json"), "w", encoding="utf-8") as f:
        f.write("{broken")
    resp = client.get("/api/results", params={"userId": "alice"})
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Error retrieving results"}
