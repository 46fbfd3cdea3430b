import json

import pytest
from fastapi.testclient import TestClient

from lostfound.conftest import SAMPLE_CSV, SAMPLE_ITEMS, FakeProvider, evaluation_reply
from lostfound.errors import ModelTransportError
from lostfound.main import create_app
from lostfound.routes import get_provider
from lostfound.settings import Settings, get_settings


@pytest.fixture
def settings():
    return Settings(OPENAI_API_KEY="test-key", STORAGE_URL="sqlite://")


@pytest.fixture
def app(settings, provider):
    app = create_app(settings)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_provider] = lambda: provider
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def test_process(client, provider):
    provider.queue({"items": SAMPLE_ITEMS})

    response = client.post("/", json={"action": "process", "csvContent": SAMPLE_CSV})

    assert response.status_code == 200
    body = response.json()
    assert body["action"] == "process"
    assert len(body["jsonData"]["items"]) == 2


def test_validate(client, provider):
    provider.queue(evaluation_reply()).queue(evaluation_reply({"name": 0.0}))

    response = client.post("/", json={
        "action": "validate",
        "csvContent": SAMPLE_CSV,
        "jsonContent": json.dumps({"items": SAMPLE_ITEMS}),
    })

    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["index"] for r in results] == [1, 2]
    assert results[1]["overall_score"] == pytest.approx(7 / 8)
    assert set(results[0]["fields"]["name"]) == {
        "source_columns", "source_value", "json_value", "field_score", "comment"}


def test_validate_accepts_decoded_json_content(client, provider):
    provider.queue(evaluation_reply()).queue(evaluation_reply())

    response = client.post("/", json={
        "action": "validate", "csvContent": SAMPLE_CSV, "jsonContent": SAMPLE_ITEMS})

    assert response.status_code == 200


def test_full(client, provider):
    provider.queue({"items": SAMPLE_ITEMS}).queue(evaluation_reply()).queue(evaluation_reply())

    response = client.post("/", json={"action": "full", "csvContent": SAMPLE_CSV})

    assert response.status_code == 200
    body = response.json()
    assert body["action"] == "full"
    assert len(body["jsonData"]["items"]) == 2
    assert len(body["validationResults"]) == 2
    assert provider.call_count == 3


def test_count_mismatch_is_400(client, provider):
    response = client.post("/", json={
        "action": "validate", "csvContent": SAMPLE_CSV, "jsonContent": SAMPLE_ITEMS[:1]})

    assert response.status_code == 400
    assert "Record count mismatch" in response.json()["error"]
    assert provider.call_count == 0


@pytest.mark.parametrize("body, message", [
    ({"action": "process"}, "csvContent"),
    ({"action": "process", "csvContent": ""}, "csvContent"),
    ({"action": "validate", "csvContent": SAMPLE_CSV}, "jsonContent"),
    ({"action": "export", "csvContent": SAMPLE_CSV}, "Invalid action"),
    ({"csvContent": SAMPLE_CSV}, "Invalid action"),
    ({"action": "process", "csvContent": "\n\n"}, "No records"),
    ({"action": "validate", "csvContent": SAMPLE_CSV, "jsonContent": "{oops"}, "not valid JSON"),
])
def test_bad_input_is_400(client, provider, body, message):
    response = client.post("/", json=body)

    assert response.status_code == 400
    assert message in response.json()["error"]
    assert provider.call_count == 0


def test_malformed_body_is_400(client):
    response = client.post("/", content="{not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid JSON in request body"}


def test_get_is_405(client):
    response = client.get("/")

    assert response.status_code == 405
    assert response.json() == {"error": "Method not allowed. Use POST."}


def test_model_failure_is_500_with_raw_payload(client, provider):
    provider.queue("I cannot help with that")

    response = client.post("/", json={"action": "process", "csvContent": SAMPLE_CSV})

    assert response.status_code == 500
    assert "I cannot help with that" in response.json()["error"]


def test_transport_failure_is_500(app):
    app.dependency_overrides[get_provider] = lambda: FakeProvider([ModelTransportError("boom")])
    client = TestClient(app)

    response = client.post("/", json={"action": "process", "csvContent": SAMPLE_CSV})

    assert response.status_code == 500
    assert response.json() == {"error": "boom"}


def test_missing_api_key_is_500():
    settings = Settings(OPENAI_API_KEY="", STORAGE_URL="sqlite://")
    app = create_app(settings)
    app.dependency_overrides[get_settings] = lambda: settings
    client = TestClient(app)

    response = client.post("/", json={"action": "process", "csvContent": SAMPLE_CSV})

    assert response.status_code == 500
    assert response.json() == {"error": "OPENAI_API_KEY is not set"}


def test_cors_preflight(client):
    response = client.options("/", headers={
        "Origin": "http://localhost:4200",
        "Access-Control-Request-Method": "POST",
        "Access-Control-Request-Headers": "Content-Type",
    })

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]
    assert response.headers["access-control-max-age"] == "86400"


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["api_key_configured"] is True
