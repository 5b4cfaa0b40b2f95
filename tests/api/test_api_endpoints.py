"""
Tests for the REST API.

Each test gets its own application around a freshly built pipeline.
"""

import base64

import pytest
from fastapi.testclient import TestClient

from api.app import PREFIX, create_app
from api.config import APIConfig
from sprint_export.config import PipelineConfig, build_orchestrator


@pytest.fixture
def orchestrator(recording_sleep):
    return build_orchestrator(PipelineConfig(), sleep=recording_sleep)


@pytest.fixture
def client(orchestrator):
    return TestClient(create_app(orchestrator=orchestrator, config=APIConfig()))


@pytest.fixture
def payload(bundle):
    return {"bundle": bundle.model_dump(mode="json")}


class TestHealth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == "Sprint Export API"

    def test_health(self, client):
        data = client.get(f"{PREFIX}/health").json()
        assert data["status"] == "ok"
        assert len(data["formats"]) == 7

    def test_formats(self, client):
        data = client.get(f"{PREFIX}/formats").json()
        by_format = {item["format"]: item for item in data["formats"]}
        assert by_format["markdown"]["extension"] == "md"
        assert by_format["digest"]["mime_type"] == "application/pdf"
        assert data["quality_tiers"] == ["low", "medium", "high"]


class TestExport:
    def test_markdown(self, client, payload):
        response = client.post(f"{PREFIX}/export/markdown", json=payload)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/markdown")
        disposition = response.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="Sprint_Review_Sprint_42_')
        assert disposition.endswith(".md")
        assert ".md\"; filename*=UTF-8''Sprint_Review_Sprint_42_" in disposition
        assert response.headers["x-export-quality-score"] == "100"
        assert response.headers["x-export-quality-status"] == "passed"
        assert response.text.startswith("---\n")

    def test_pdf_with_options(self, client, payload):
        payload["options"] = {"quality": "high", "compression": True, "file_name": "deck.pdf"}

        response = client.post(f"{PREFIX}/export/pdf", json=payload)

        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")
        assert response.headers["content-disposition"] == "attachment; filename=\"deck.pdf\"; filename*=UTF-8''deck.pdf"

    def test_repeat_export_is_served_from_cache(self, client, payload, orchestrator):
        first = client.post(f"{PREFIX}/export/html", json=payload)
        second = client.post(f"{PREFIX}/export/html", json=payload)

        assert first.content == second.content
        assert "x-export-quality-score" not in second.headers
        assert orchestrator.cache.get_stats()["hits"] == 1

    def test_unknown_format(self, client, payload):
        response = client.post(f"{PREFIX}/export/docx", json=payload)

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "FORMAT_ERROR"
        assert body["recoverable"] is False
        assert body["attempts"] == 0

    def test_empty_presentation(self, client, payload):
        payload["bundle"]["presentation"]["slides"] = []

        response = client.post(f"{PREFIX}/export/markdown", json=payload)

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_malformed_body(self, client):
        response = client.post(f"{PREFIX}/export/markdown", json={"bundle": {}})
        assert response.status_code == 422
        assert "detail" in response.json()

    def test_executive_metrics(self, client, metrics, issues):
        response = client.post(f"{PREFIX}/export/executive-metrics", json={
            "metrics": metrics.model_dump(mode="json"),
            "issues": [issue.model_dump(mode="json") for issue in issues],
        })

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert 'filename="Executive_Summary_Sprint_42_' in response.headers["content-disposition"]
        assert response.text.startswith("<!DOCTYPE html>")


class TestStats:
    def test_cache_stats_and_clear(self, client, payload):
        client.post(f"{PREFIX}/export/markdown", json=payload)

        stats = client.get(f"{PREFIX}/cache/stats").json()
        assert stats["stats"]["total_entries"] == 1

        assert client.delete(f"{PREFIX}/cache").json() == {"cleared": 1}
        assert client.get(f"{PREFIX}/cache/stats").json()["stats"]["total_entries"] == 0

    def test_error_stats(self, client, payload):
        client.post(f"{PREFIX}/export/docx", json=payload)

        stats = client.get(f"{PREFIX}/errors/stats").json()

        assert stats["total_errors"] == 1

    def test_analytics(self, client, payload):
        client.post(f"{PREFIX}/export/markdown", json=payload)

        data = client.get(f"{PREFIX}/analytics/metrics", params={"time_range": "day"}).json()

        assert data["metrics"]["successful_exports"] == 1
        assert data["health"]["overall_health"] in ("excellent", "good", "fair", "poor")

    def test_analytics_bad_range(self, client):
        assert client.get(f"{PREFIX}/analytics/metrics", params={"time_range": "decade"}).status_code == 422

    def test_analytics_disabled(self, recording_sleep):
        config = PipelineConfig()
        config.analytics.enabled = False
        client = TestClient(create_app(orchestrator=build_orchestrator(config), config=APIConfig()))

        assert client.get(f"{PREFIX}/analytics/metrics").status_code == 404


class TestAuth:
    @pytest.fixture
    def secured(self, orchestrator):
        return TestClient(create_app(orchestrator=orchestrator, config=APIConfig(api_key="s3cret")))

    def test_key_required_when_configured(self, secured, payload):
        assert secured.post(f"{PREFIX}/export/markdown", json=payload).status_code == 401
        assert secured.get(f"{PREFIX}/cache/stats", headers={"X-API-Key": "wrong"}).status_code == 401
        assert secured.get(f"{PREFIX}/cache/stats", headers={"X-API-Key": "s3cret"}).status_code == 200

    def test_health_is_public(self, secured):
        assert secured.get(f"{PREFIX}/health").status_code == 200


def test_config_from_environment(monkeypatch):
    monkeypatch.setenv("SPRINT_EXPORT_API_KEY", "s3cret")
    monkeypatch.setenv("SPRINT_EXPORT_API_PORT", "9000")
    monkeypatch.setenv("SPRINT_EXPORT_API_CORS_ORIGINS", "https://a.example,https://b.example")
    monkeypatch.setenv("SPRINT_EXPORT_API_DEBUG", "true")

    config = APIConfig.load()

    assert config.port == 9000
    assert config.cors_origins == ["https://a.example", "https://b.example"]
    assert config.debug is True
    assert config.api_key == "s3cret"


def with_corporate_image(payload, url):
    slide = payload["bundle"]["presentation"]["slides"][0]
    slide.update({"type": "corporate", "corporate_slide_url": url})
    return payload


class TestImageSources:
    SECRET = b"TOP-SECRET-SERVER-FILE"

    @pytest.fixture
    def secret_file(self, tmp_path):
        path = tmp_path / "secret.png"
        path.write_bytes(self.SECRET)
        return path

    def assert_not_embedded(self, response):
        assert response.status_code == 200
        assert base64.b64encode(self.SECRET) not in response.content
        assert b'src="data:' not in response.content

    def test_server_files_are_not_embedded(self, client, payload, secret_file):
        response = client.post(f"{PREFIX}/export/html", json=with_corporate_image(payload, str(secret_file)))
        self.assert_not_embedded(response)

        response = client.post(f"{PREFIX}/export/pdf", json=with_corporate_image(payload, f"file://{secret_file}"))
        assert response.status_code == 200
        assert self.SECRET not in response.content

    def test_configured_local_root_is_ignored(self, payload, secret_file, tmp_path):
        config_file = tmp_path / "pipeline.yaml"
        config_file.write_text(f"assets:\n  local_root: {tmp_path}\n", encoding="utf-8")
        client = TestClient(create_app(config=APIConfig(config_file=str(config_file))))

        response = client.post(f"{PREFIX}/export/html", json=with_corporate_image(payload, str(secret_file)))

        self.assert_not_embedded(response)

    def test_remote_images_need_allowed_host(self, payload):
        client = TestClient(create_app(config=APIConfig()))
        url = "http://169.254.169.254/latest/meta-data"

        response = client.post(f"{PREFIX}/export/html", json=with_corporate_image(payload, url))

        assert response.status_code == 200
        assert f'src="{url}"'.encode() in response.content

    def test_image_hosts_from_environment(self, monkeypatch):
        monkeypatch.setenv("SPRINT_EXPORT_API_IMAGE_HOSTS", "cdn.example.com, static.example.com")
        assert APIConfig.load().image_hosts == ["cdn.example.com", "static.example.com"]


class TestFileNames:
    def test_non_ascii_name(self, client, payload):
        payload["options"] = {"file_name": "报告.md"}

        response = client.post(f"{PREFIX}/export/markdown", json=payload)

        assert response.status_code == 200
        assert response.headers["content-disposition"] == (
            "attachment; filename=\"__.md\"; filename*=UTF-8''%E6%8A%A5%E5%91%8A.md"
        )

    def test_quote_in_name(self, client, payload):
        payload["options"] = {"file_name": 'a"b.md'}

        response = client.post(f"{PREFIX}/export/markdown", json=payload)

        assert response.status_code == 200
        assert response.headers["content-disposition"] == (
            "attachment; filename=\"a_b.md\"; filename*=UTF-8''a%22b.md"
        )

    @pytest.mark.parametrize("file_name", ["../escape.md", "reports/deck.md", "..\\deck.md", "deck\n.md", ".."])
    def test_unsafe_names_are_rejected(self, client, payload, orchestrator, file_name):
        payload["options"] = {"file_name": file_name}

        response = client.post(f"{PREFIX}/export/markdown", json=payload)

        assert response.status_code == 422
        assert orchestrator.cache.get_stats()["total_entries"] == 0
