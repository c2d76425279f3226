"""
Tests for the REST surface over an in-memory engine.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import GOVERNING_LAW_TEXT
from app import create_app
from app import ClauseEngineService
from config.settings import settings
from model_manager import HashingEmbeddingBackend
from services import SemanticEmbeddingService


PREFIX = settings.API_PREFIX


@pytest.fixture
def client():
    service = ClauseEngineService(database_url      = "sqlite:///:memory:",
                                  embedding_service = SemanticEmbeddingService(backend = HashingEmbeddingBackend(), use_disk_cache = False),
                                  enable_generation = False,
                                  seed_playbook     = True,
                                 )

    with TestClient(create_app(engine_service = service)) as test_client:
        yield test_client


class TestServiceEndpoints:
    """Health and playbook discovery."""

    def test_health(self, client):
        body = client.get(f"{PREFIX}/health").json()

        assert body["status"] == "healthy"
        assert body["clause_types"] == 3
        assert body["weights_version"] == 1
        assert body["generation_enabled"] is False

    def test_clause_types(self, client):
        clause_types = client.get(f"{PREFIX}/clause-types").json()["clause_types"]

        assert [clause["id"] for clause in clause_types] == ["confidentiality_definition", "confidentiality_duration", "governing_law"]


class TestAnalyzeEndpoint:
    """Analysis requests and stored results."""

    def test_analyze_and_fetch(self, client):
        response = client.post(f"{PREFIX}/analyze", json = {"text": GOVERNING_LAW_TEXT, "perspective": "receiving"})
        body     = response.json()

        assert response.status_code == 200
        assert body["perspective"] == "receiving"
        assert len(body["clause_results"]) == 3

        stored   = client.get(f"{PREFIX}/analyses/{body['analysis_id']}")

        assert stored.status_code == 200
        assert stored.json()["analysis_id"] == body["analysis_id"]

    def test_default_perspective_and_options(self, client):
        body = client.post(f"{PREFIX}/analyze", json = {"text"    : GOVERNING_LAW_TEXT,
                                                        "options" : {"clause_types": ["governing_law"], "use_cache": False},
                                                       }).json()

        assert body["perspective"] == "mutual"
        assert [result["clause_type_id"] for result in body["clause_results"]] == ["governing_law"]

    def test_short_text_reports_every_clause_missing(self, client):
        body = client.post(f"{PREFIX}/analyze", json = {"text": "too short"}).json()

        assert all(result["tier"] == "missing" for result in body["clause_results"])
        assert all(result["state_path"] == ["not_started", "resolved"] for result in body["clause_results"])
        assert body["overall_confidence"] == 0.0

    def test_invalid_options(self, client):
        response = client.post(f"{PREFIX}/analyze", json = {"text": GOVERNING_LAW_TEXT, "options": {"max_results": 0}})

        assert response.status_code == 422

    def test_unknown_analysis(self, client):
        response = client.get(f"{PREFIX}/analyses/not-an-id")

        assert response.status_code == 404
        assert "not-an-id" in response.json()["detail"]


class TestFeedbackEndpoints:
    """Feedback intake, learning passes and rule performance."""

    def test_feedback_then_learning(self, client):
        response = client.post(f"{PREFIX}/feedback", json = {"rule_id"              : "gov-mut-preferred",
                                                             "reviewer_action"      : "accepted",
                                                             "predicted_confidence" : 0.6,
                                                             "context"              : {"perspective": "mutual"},
                                                            })

        assert response.status_code == 202
        assert response.json()["record"]["actual_quality"] == 1.0

        result = client.post(f"{PREFIX}/learning/run").json()

        assert result["processed"] == 1
        assert result["improvements_applied"] == 2
        assert result["errors"] == []

        performance = client.get(f"{PREFIX}/rules/gov-mut-preferred/performance").json()

        assert performance["rule"]["id"] == "gov-mut-preferred"
        assert performance["performance"]["true_positives"] == 1
        assert performance["rule"]["confidence_score"] == pytest.approx(0.73)

    def test_schema_errors(self, client):
        bad_action     = client.post(f"{PREFIX}/feedback", json = {"rule_id": "r1", "reviewer_action": "approved", "predicted_confidence": 0.5})
        bad_confidence = client.post(f"{PREFIX}/feedback", json = {"rule_id": "r1", "reviewer_action": "accepted", "predicted_confidence": 2})

        assert bad_action.status_code == 422
        assert bad_confidence.status_code == 422

    def test_unrecordable_feedback(self, client):
        response = client.post(f"{PREFIX}/feedback", json = {"rule_id"              : "r1",
                                                             "reviewer_action"      : "accepted",
                                                             "predicted_confidence" : 0.5,
                                                             "context"              : {"perspective": "sideways"},
                                                            })

        assert response.status_code == 422
        assert response.json()["error"] == "Feedback could not be recorded"

    def test_fresh_rule_performance(self, client):
        body = client.get(f"{PREFIX}/rules/gov-dsc-fallback/performance").json()

        assert body["performance"]["sample_size"] == 0

    def test_unknown_rule(self, client):
        assert client.get(f"{PREFIX}/rules/retired/performance").status_code == 404

    def test_analytics(self, client):
        client.post(f"{PREFIX}/analyze", json = {"text": GOVERNING_LAW_TEXT})

        body = client.get(f"{PREFIX}/analytics").json()

        assert body["analyses"] == 1
        assert body["rules"]["total_rules"] == 27
        assert body["learning"]["weights_version"] == 1
        assert "embeddings" in body
