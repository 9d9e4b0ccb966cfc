"""Integration tests for the HTTP surface."""

from unittest.mock import Mock

import pytest
from reva import Reva
from reva.config import Settings
from reva.identifiers import is_valid
from reva.identity import IDENTITY_RESPONSE
from reva.observers import Collector


@pytest.fixture
def scripted_llm():
    """LLM mock whose answer each test sets through ``extract_content``."""
    llm = Mock()
    llm.generate_response.return_value = object()
    return llm


@pytest.fixture
def scripted_client(scripted_llm):
    app = Reva(llm=scripted_llm, observer=Collector(), settings=Settings())
    app.config["TESTING"] = True
    return app.test_client()


class TestChatRoute:
    def test_echo_round_trip(self, client):
        response = client.post("/api/v1/chat", json={"chatInput": "Hello Reva"})
        assert response.status_code == 200
        body = response.get_json()
        assert "Hello Reva" in body["aiResponseText"]
        assert body["actionMetadata"]["tool"] == "generalChat"
        assert body["errorDetails"] is None
        assert body["actionIcon"] == "chat"

    @pytest.mark.parametrize(
        "payload",
        [{}, {"chatInput": ""}, {"chatInput": "   "}, {"chatInput": 42}, {"chatHistory": []}],
    )
    def test_missing_chat_input(self, scripted_client, scripted_llm, payload):
        """A missing or blank message is rejected without calling the LLM."""
        response = scripted_client.post("/api/v1/chat", json=payload)
        assert response.status_code == 400
        assert "error" in response.get_json()
        scripted_llm.generate_response.assert_not_called()

    def test_non_json_body(self, client):
        response = client.post("/api/v1/chat", data="hello", content_type="text/plain")
        assert response.status_code == 400
        assert "error" in response.get_json()

    def test_json_array_body(self, client):
        response = client.post("/api/v1/chat", json=["hello"])
        assert response.status_code == 400

    def test_other_invalid_fields(self, client):
        response = client.post(
            "/api/v1/chat", json={"chatInput": "hi", "tone": 7, "currentDate": []}
        )
        assert response.status_code == 400
        body = response.get_json()
        fields = {detail["field"] for detail in body["details"]}
        assert fields == {"tone", "currentDate"}

    def test_message_alias_accepted(self, client):
        response = client.post("/api/v1/chat", json={"message": "Hello"})
        assert response.status_code == 200

    def test_identity_question(self, scripted_client, scripted_llm):
        response = scripted_client.post("/api/v1/chat", json={"chatInput": "Who made you?"})
        assert response.status_code == 200
        body = response.get_json()
        assert body["aiResponseText"] == IDENTITY_RESPONSE
        assert body["actionIcon"] == "info"
        scripted_llm.generate_response.assert_not_called()

    def test_create_task(self, scripted_client, scripted_llm, envelope):
        scripted_llm.extract_content.return_value = envelope(
            "createTask", {"description": "Buy groceries", "priority": "high"}, text="Added!"
        )
        response = scripted_client.post(
            "/api/v1/chat", json={"chatInput": "Add buy groceries, high priority"}
        )
        body = response.get_json()
        assert response.status_code == 200
        assert body["aiResponseText"] == "Added!"
        assert body["contextItemType"] == "task"
        assert is_valid(body["contextItemId"])
        assert body["actionMetadata"]["task_id"] == body["contextItemId"]
        assert body["actionMetadata"]["priority"] == "high"

    def test_update_with_timestamp_id(self, scripted_client, scripted_llm, envelope):
        """A timestamp-style id yields a 200 with a structured error."""
        scripted_llm.extract_content.return_value = envelope(
            "updateTask", {"taskId": "1753374370671", "updates": {"completed": True}}
        )
        response = scripted_client.post("/api/v1/chat", json={"chatInput": "done"})
        body = response.get_json()
        assert response.status_code == 200
        assert body["actionMetadata"] is None
        assert body["errorDetails"]["errorCode"] == "INVALID_TASK_ID_FORMAT"
        assert body["errorDetails"]["retryable"] is False
        assert body["errorDetails"]["suggestedAction"]
        assert body["errorDetails"]["timestamp"]

    def test_batched_expenses(self, scripted_client, scripted_llm, envelope):
        scripted_llm.extract_content.return_value = envelope(
            "trackExpenses",
            {
                "expenses": [
                    {"item": "Coffee", "amount": 12},
                    {"item": "Lunch", "amount": 45},
                    {"item": "Taxi", "amount": 25},
                ]
            },
        )
        body = scripted_client.post("/api/v1/chat", json={"chatInput": "expenses"}).get_json()
        assert body["actionMetadata"]["total_amount"] == 82
        assert len(body["multipleActions"]) == 3
        assert len({action["id"] for action in body["multipleActions"]}) == 3

    def test_plain_text_answer(self, scripted_client, scripted_llm):
        scripted_llm.extract_content.return_value = "Just some thoughts, no JSON."
        body = scripted_client.post("/api/v1/chat", json={"chatInput": "hm"}).get_json()
        assert body["aiResponseText"] == "Just some thoughts, no JSON."
        assert body["actionMetadata"] is None
        assert body["errorDetails"] is None

    def test_upstream_rate_limit(self, scripted_client, scripted_llm):
        error = Exception("Too Many Requests")
        error.status_code = 429
        scripted_llm.generate_response.side_effect = error
        response = scripted_client.post("/api/v1/chat", json={"chatInput": "hi"})
        assert response.status_code == 429
        body = response.get_json()
        assert body["errorDetails"]["errorCode"] == "RATE_LIMITED"
        assert body["errorDetails"]["retryable"] is True

    def test_upstream_connection_failure(self, scripted_client, scripted_llm):
        scripted_llm.generate_response.side_effect = ConnectionError("refused")
        response = scripted_client.post("/api/v1/chat", json={"chatInput": "hi"})
        assert response.status_code == 503
        assert response.get_json()["errorDetails"]["errorCode"] == "SERVICE_UNAVAILABLE"


class TestHealthRoute:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "ok"
        assert body["timestamp"]


class TestDebugRoute:
    @pytest.mark.slow
    def test_identifier_diagnostics(self, client):
        response = client.get("/api/v1/debug/identifiers?count=50")
        assert response.status_code == 200
        body = response.get_json()
        assert body["health"] == "HEALTHY"
        assert body["generation"]["requested"] == 50

    @pytest.mark.parametrize("count,expected", [("0", 1), ("-5", 1), ("abc", 100)])
    def test_count_is_clamped(self, client, count, expected):
        response = client.get(f"/api/v1/debug/identifiers?count={count}")
        assert response.get_json()["generation"]["requested"] == expected

    def test_hidden_unless_enabled(self, scripted_client):
        assert scripted_client.get("/api/v1/debug/identifiers").status_code == 404
        assert scripted_client.get("/api/v1/debug/identifiers/monitor").status_code == 404

    def test_monitor_with_empty_window(self, client):
        response = client.get("/api/v1/debug/identifiers/monitor?duration=0&interval=0")
        assert response.status_code == 200
        body = response.get_json()
        assert body["duration"] == 0.0
        assert body["interval"] == 0.05
        assert body["summary"]["total_samples"] == 0

    @pytest.mark.slow
    def test_monitor_samples_generation(self, client):
        body = client.get(
            "/api/v1/debug/identifiers/monitor?duration=0.2&interval=0.05"
        ).get_json()
        assert body["summary"]["total_samples"] >= 1
        assert body["summary"]["all_valid"] is True


class TestCors:
    def test_allows_any_origin_by_default(self, client):
        response = client.get("/health", headers={"Origin": "https://app.example"})
        assert response.headers["Access-Control-Allow-Origin"] in (
            "*",
            "https://app.example",
        )
