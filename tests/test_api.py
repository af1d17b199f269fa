"""Tests for the HTTP service."""

from fastapi.testclient import TestClient

from provider_discovery import pipeline
from provider_discovery.api.main import app
from provider_discovery.connectors import MockRegistryConnector

client = TestClient(app)


class TestAPI:
    """Tests for run submission and retrieval."""

    def test_health(self):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_invalid_profile_rejected(self):
        response = client.post("/api/runs", json={"profile": {"areas": []}, "use_mock": True})
        assert response.status_code == 422

    def test_unknown_run(self):
        assert client.get("/api/runs/does-not-exist").status_code == 404

    def test_mock_run_lifecycle(self):
        profile = {
            "areas": [{"state": "NY", "cities": ["New York"]}],
            "taxonomy_codes": ["207N00000X"],
            "keywords": [],
            "official_surnames": [],
        }
        response = client.post("/api/runs", json={"profile": profile, "use_mock": True})
        assert response.status_code == 200
        run_id = response.json()["run_id"]

        # Background tasks complete before the test client returns
        status = client.get(f"/api/runs/{run_id}").json()
        assert status["status"] == "completed"
        assert status["report"]["unique_records"] == 3

        results = client.get(f"/api/runs/{run_id}/results").json()
        assert results["total_results"] == 3
        assert results["results"][0]["rank"] == 1
        assert results["results"][0]["reasons"]

        medium = client.get(f"/api/runs/{run_id}/results", params={"tier": "Medium"}).json()
        assert [r["identifier"] for r in medium["results"]] == ["1000000001"]

        export = client.get(f"/api/runs/{run_id}/export")
        assert export.status_code == 200
        assert export.headers["content-type"].startswith("text/csv")
        assert export.text.splitlines()[0] == (
            "identifier,name,address_1,address_2,city,state,postal_code,phone,category,score,tier,source_tag"
        )

    def test_live_run_includes_web_search(self, monkeypatch):
        def search_results(plan, cursor, page_size):
            return [{
                "title": "Glow Medical Spa - Botox in NYC",
                "href": "https://glowmedspa.example.com",
                "body": "Call (212) 555-0100 for botox.",
            }]

        monkeypatch.setattr(pipeline, "NPIRegistryConnector", MockRegistryConnector)
        monkeypatch.setattr(
            pipeline, "DuckDuckGoConnector", lambda: MockRegistryConnector(page_factory=search_results),
        )
        profile = {
            "areas": [{"state": "NY", "cities": ["New York"]}],
            "taxonomy_codes": ["207N00000X"],
            "keywords": [],
            "official_surnames": [],
            "include_web_search": True,
            "web_search_terms": ["medical spa"],
        }
        response = client.post("/api/runs", json={"profile": profile, "use_mock": False})
        run_id = response.json()["run_id"]

        status = client.get(f"/api/runs/{run_id}").json()
        assert status["status"] == "completed"
        assert status["report"]["plans_total"] == 2
        assert status["report"]["unique_records"] == 4

        results = client.get(f"/api/runs/{run_id}/results").json()["results"]
        web = [r for r in results if r["identifier"].startswith("SYN-")]
        assert len(web) == 1
        assert web[0]["category_source"] == "keyword"
