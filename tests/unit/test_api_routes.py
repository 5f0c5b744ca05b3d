import sys
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient
import httpx
import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))

from review_ledger.api.routes import metrics as metrics_module  # noqa: E402
from review_ledger.api.routes import reviews as reviews_module  # noqa: E402
from review_ledger.api.routes import status as status_module  # noqa: E402
from review_ledger.config.settings import settings  # noqa: E402
from review_ledger.services.errors import StorageUnavailable  # noqa: E402
from review_ledger.services.gateway import ReviewGateway  # noqa: E402
from review_ledger.services.ledger import (  # noqa: E402
    ConfusionClassifier,
    JsonFileBackend,
    MemoryBackend,
    VerificationLedger,
)

UPSTREAM = "http://upstream.test/reviews"


class BrokenWriteBackend(MemoryBackend):
    def save(self, records, log_line=None):
        raise StorageUnavailable("read-only volume")


def build_client(monkeypatch, ledger, gateway=None):
    app = FastAPI()
    app.include_router(reviews_module.router)
    app.include_router(metrics_module.router)
    app.include_router(status_module.router)

    for module in (reviews_module, metrics_module, status_module):
        monkeypatch.setattr(module, "get_ledger", lambda: ledger)
    if gateway is not None:
        monkeypatch.setattr(reviews_module, "get_gateway", lambda: gateway)

    return TestClient(app)


@pytest.fixture
def ledger():
    return VerificationLedger(backend=MemoryBackend(), classifier=ConfusionClassifier("INCIDENT"))


@pytest.fixture
def client(monkeypatch, ledger):
    return build_client(monkeypatch, ledger)


def test_verify_then_metrics_scenarios(client):
    first = client.post("/apiv2/reviews/verify", json={"id": "r1", "verdict": "correct", "meta": {"label": "INCIDENT"}})
    assert first.status_code == 200
    assert first.json()["ok"] is True
    assert first.json()["record"]["confusion"] == "TP"
    assert first.headers["cache-control"] == "no-store"

    client.post("/apiv2/reviews/verify", json={"id": "r2", "verdict": "incorrect", "meta": {"label": "NOT"}})
    payload = client.get("/apiv2/metrics").json()
    rates = payload["metrics"]["rates"]
    assert payload["metrics"]["counts"]["tp"] == 1
    assert payload["metrics"]["counts"]["fn"] == 1
    assert rates["precision"] == 1
    assert rates["recall"] == pytest.approx(0.5)
    assert rates["accuracy"] == pytest.approx(0.5)

    client.post("/apiv2/reviews/verify", json={"id": "r1", "verdict": "incorrect", "meta": {"label": "INCIDENT"}})
    counts = client.get("/apiv2/metrics").json()["metrics"]["counts"]
    assert counts["tp"] == 0
    assert counts["fp"] == 1
    assert counts["total"] == 2


def test_empty_metrics(client):
    payload = client.get("/apiv2/metrics").json()

    assert payload["ledger_available"] is True
    assert payload["last_updated"] is None
    assert payload["metrics"]["counts"]["total"] == 0
    assert payload["metrics"]["rates"] == {"accuracy": 0, "precision": 0, "recall": 0, "f1": 0}


def test_metrics_last_updated_tracks_latest_verification(client):
    client.post("/apiv2/reviews/verify", json={"id": "a", "verdict": "correct", "timestamp": "2025-08-01T00:00:00Z"})
    client.post("/apiv2/reviews/verify", json={"id": "b", "verdict": "correct", "timestamp": "2025-08-03T00:00:00Z"})

    payload = client.get("/apiv2/metrics?include_records=true").json()

    assert payload["last_updated"].startswith("2025-08-03T00:00:00")
    assert [r["id"] for r in payload["metrics"]["verifications_by_label"]["unknown"]] == ["a", "b"]


def test_verify_rejects_invalid_payload(client):
    response = client.post("/apiv2/reviews/verify", json={"id": "r1", "verdict": "maybe"})

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["ok"] is False
    assert detail["error"] == "Invalid payload"
    assert "verdict" in detail["reason"]


def test_verify_rejects_non_json_body(client):
    response = client.post(
        "/apiv2/reviews/verify",
        content=b"not json",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "Invalid request"


def test_verify_reports_storage_failure(monkeypatch):
    ledger = VerificationLedger(backend=BrokenWriteBackend())
    client = build_client(monkeypatch, ledger)

    response = client.post("/apiv2/reviews/verify", json={"id": "r1", "verdict": "correct"})

    assert response.status_code == 500
    assert response.json()["detail"]["ok"] is False


def test_unreadable_ledger_is_flagged(monkeypatch, tmp_path):
    results = tmp_path / "verification_results.json"
    results.write_text("{broken")
    client = build_client(monkeypatch, VerificationLedger(backend=JsonFileBackend(results_path=results)))

    payload = client.get("/apiv2/metrics").json()
    assert payload["ledger_available"] is False
    assert payload["ledger_error"]

    stats = client.get("/apiv2/reviews/stats").json()
    assert stats["meta"]["ledger_available"] is False

    status = client.get("/apiv2/status").json()
    assert status["status"] == "degraded"


def test_review_stats_shape(client):
    client.post("/apiv2/reviews/verify", json={"id": "r1", "verdict": "correct", "meta": {"label": "INCIDENT"}})
    client.post("/apiv2/reviews/verify", json={"id": "r3", "verdict": "correct"})

    payload = client.get("/apiv2/reviews/stats").json()

    assert payload["meta"]["total"] == 2
    assert payload["counts"] == {"total": 2, "correct": 2, "incorrect": 0, "tp": 1, "tn": 0, "fp": 0, "fn": 0}
    assert payload["metrics"]["f1"] == 1


def test_status_reports_file_store(monkeypatch, tmp_path):
    backend = JsonFileBackend(
        results_path=tmp_path / "verification_results.json",
        backup_path=tmp_path / "verification_results_backup.json",
        log_path=tmp_path / "verification_log.txt",
    )
    client = build_client(monkeypatch, VerificationLedger(backend=backend))
    client.post("/apiv2/reviews/verify", json={"id": "r1", "verdict": "correct"})

    payload = client.get("/apiv2/status").json()

    assert payload["status"] == "healthy"
    persistence = payload["persistence"]
    assert persistence["backend"] == "file"
    assert persistence["results_file"]["exists"] is True
    assert persistence["results_file"]["record_count"] == 1
    assert persistence["log_file"]["exists"] is True
    assert persistence["backup_file"]["exists"] is False


def test_reviews_pass_through(monkeypatch, ledger):
    body = {"meta": {"total": 1, "page": 1}, "items": [{"id": "a", "prediction": {"label": "NOT"}}]}
    gateway = ReviewGateway(UPSTREAM, transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body)))
    client = build_client(monkeypatch, ledger, gateway)

    response = client.get("/apiv2/reviews?page=1&label=NOT")

    assert response.status_code == 200
    assert response.json() == body
    assert response.headers["x-data-source"] == "live"

    labels = client.get("/apiv2/reviews/labels").json()
    assert labels == {"total": 1, "labels": {"NOT": 1}}


def test_reviews_upstream_error_is_gateway_error(monkeypatch, ledger):
    gateway = ReviewGateway(UPSTREAM, transport=httpx.MockTransport(lambda request: httpx.Response(500)))
    client = build_client(monkeypatch, ledger, gateway)

    response = client.get("/apiv2/reviews?page=1")

    assert response.status_code == 502
    assert response.json()["detail"] == {"error": "Upstream error", "status": 500}


def test_reviews_upstream_timeout_is_504(monkeypatch, ledger):
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    client = build_client(monkeypatch, ledger, ReviewGateway(UPSTREAM, transport=httpx.MockTransport(handler)))

    assert client.get("/apiv2/reviews").status_code == 504


def test_sample_fallback_is_flagged(monkeypatch, ledger):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = build_client(monkeypatch, ledger, ReviewGateway(UPSTREAM, transport=httpx.MockTransport(handler)))
    monkeypatch.setattr(settings, "REVIEWS_SAMPLE_FALLBACK", True)

    response = client.get("/apiv2/reviews?page=1")

    assert response.status_code == 200
    assert response.headers["x-data-source"] == "sample"
    payload = response.json()
    assert payload["sample_data"] is True
    assert payload["upstream_error"]
    assert payload["items"]
