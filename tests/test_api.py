"""HTTP adapter tests against offline providers."""

import pytest
from fastapi.testclient import TestClient

from server.api import create_app
from studio_app.app import GarmentStudioApp
from studio_app.config import StudioConfig
from tools.image_generation import MockImageProvider
from tools.tryon import MockTryOnProvider

AVATAR = {"avatar_id": "avatar-1", "avatar_image": "https://avatars.example.test/original.png"}


@pytest.fixture()
def client() -> TestClient:
    studio = GarmentStudioApp(
        config=StudioConfig(),
        image_provider=MockImageProvider(),
        tryon_provider=MockTryOnProvider(),
        sleep=lambda _: None,
    )
    return TestClient(create_app(studio))


def test_healthcheck(client: TestClient) -> None:
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "garment-studio", "environment": "local"}


def test_full_workflow_over_http(client: TestClient) -> None:
    session = client.post("/sessions", json=AVATAR).json()
    session_id = session["session_id"]
    assert session["step"] == "input"

    preview = client.post(f"/sessions/{session_id}/submit", json={"description": "red silk blouse", "style": "formal"})
    assert preview.status_code == 200
    assert preview.json()["step"] == "preview"
    assert preview.json()["validation"]["score"] == 75

    complete = client.post(f"/sessions/{session_id}/accept").json()
    assert complete["step"] == "complete"
    assert complete["progress"] == 100
    assert complete["tryon_result"]["kind"] == "composited"

    avatar = client.get("/avatars/avatar-1").json()
    assert avatar["changes_applied"] == 1
    assert avatar["message"] == "4 changes remaining before a reset is recommended."

    reset = client.post("/avatars/avatar-1/reset").json()
    assert reset["changes_applied"] == 0
    assert client.post(f"/sessions/{session_id}/start-new").json()["step"] == "input"


def test_errors_map_to_status_codes(client: TestClient) -> None:
    missing = client.get("/sessions/nope")
    assert missing.status_code == 404
    assert missing.json()["error"] == "UnknownSessionError"

    session_id = client.post("/sessions", json={}).json()["session_id"]
    conflict = client.post(f"/sessions/{session_id}/accept")
    assert conflict.status_code == 409
    assert conflict.json()["retryable"] is False

    invalid = client.post(f"/sessions/{session_id}/submit", json={"description": "  "})
    assert invalid.status_code == 422
    assert client.get(f"/sessions/{session_id}").json()["step"] == "input"


def test_cancel_without_work_reports_false(client: TestClient) -> None:
    session_id = client.post("/sessions", json={}).json()["session_id"]

    assert client.post(f"/sessions/{session_id}/cancel").json() == {"cancelled": False}


def test_suggestions_endpoint(client: TestClient) -> None:
    response = client.post(
        "/suggestions",
        json={
            "weather": {"temperature": 30, "condition": "snow"},
            "style_profile": {"archetypes": ["edgy"], "favorite_colors": ["black"]},
            "season": "winter",
            "time_of_day": "evening",
        },
    )

    assert response.status_code == 200
    names = [item["name"] for item in response.json()["suggestions"]]
    assert names == ["winter Warmth", "Urban Edge", "Winter Chic"]


def test_variations_and_choice_update_preferences(client: TestClient) -> None:
    response = client.post(
        "/variations",
        json={"request": {"description": "navy wool coat", "style": "vintage"}, "labels": ["artistic"], "user_id": "u1"},
    )
    variation = response.json()["variations"][0]
    assert variation["variation"] == "artistic"
    assert variation["image_url"].startswith("https://images.example.test/garments/")

    prefs = client.post(
        "/variations/choice",
        json={
            "variation_label": "Artistic",
            "prompt_used": variation["prompt"],
            "outfit_style": "vintage",
            "user_id": "u1",
        },
    ).json()
    assert prefs["favorite_variation"] == "artistic"
    assert client.get("/preferences/u1").json()["profile"]["variation_preference_counts"] == {"artistic": 1}


def test_register_avatar_validates_input(client: TestClient) -> None:
    assert client.post("/avatars", json={"avatar_id": "a2", "image_url": ""}).status_code == 422

    status = client.post("/avatars", json={"avatar_id": "a2", "image_url": "https://avatars.example.test/a2.png"})
    assert status.json()["image_url"] == "https://avatars.example.test/a2.png"


def test_choice_in_a_session_is_stored_for_the_session_user(client: TestClient) -> None:
    session_id = client.post("/sessions", json={"user_id": "u7"}).json()["session_id"]
    variation = client.post(
        "/variations",
        json={"request": {"description": "navy wool coat"}, "labels": ["artistic"], "session_id": session_id},
    ).json()["variations"][0]

    prefs = client.post(
        "/variations/choice",
        json={
            "variation_label": "artistic",
            "prompt_used": variation["prompt"],
            "outfit_style": "casual",
            "session_id": session_id,
        },
    ).json()

    assert prefs["favorite_variation"] == "artistic"
    assert client.get("/preferences/u7").json()["favorite_variation"] == "artistic"
    assert client.get("/preferences/default").json()["favorite_variation"] is None
