"""
Tests for FastAPI backend endpoints.
"""

from fastapi.testclient import TestClient

from tab_grouper.storage.cache import CATEGORY_NAMESPACE


class TestHealthEndpoint:
    """Tests for GET /health endpoint."""

    def test_health_check(self):
        from tab_grouper.server.app import app

        client = TestClient(app)
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["api_key_configured"] is True
        assert "timestamp" in data

    def test_health_without_api_key(self, mock_settings):
        from tab_grouper.server.app import app

        mock_settings.openai_api_key = None
        client = TestClient(app)

        assert client.get("/health").json()["api_key_configured"] is False


class TestOrganizeEndpoint:
    """Tests for POST /api/tabs/organize endpoint."""

    def test_organize_returns_operations(self, sample_organize_data):
        """One tab joins News, the Python tabs get a new group, the rest stay ungrouped."""
        from tab_grouper.server.app import app

        client = TestClient(app)
        response = client.post("/api/tabs/organize", json=sample_organize_data)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"

        operations = data["operations"]
        assert operations[0] == {
            "action": "add",
            "group_id": 10,
            "tab_ids": [1],
            "title": "News",
            "color": "blue",
        }
        assert operations[1]["action"] == "create"
        assert operations[1]["tab_ids"] == [2, 3]
        assert operations[1]["title"] == "python"
        assert len(operations) == 2

        assert data["placed_tab_ids"] == [1]
        assert data["ungrouped_tab_ids"] == []
        assert data["leftover_tab_ids"] == [2, 3, 4, 5]
        grouped = [cluster for cluster in data["clusters"] if cluster["grouped"]]
        assert [cluster["tab_ids"] for cluster in grouped] == [[2, 3]]

    def test_organize_reports_skipped_tabs(self, sample_organize_data):
        from tab_grouper.server.app import app

        sample_organize_data["tabs"].append(
            {"id": 6, "url": "chrome://settings", "title": "Settings", "window_id": 1}
        )
        client = TestClient(app)
        response = client.post("/api/tabs/organize", json=sample_organize_data)

        assert response.status_code == 200
        assert response.json()["skipped_tab_ids"] == [6]

    def test_organize_ignores_grouped_tabs(self, sample_organize_data):
        from tab_grouper.server.app import app

        sample_organize_data["tabs"][4]["group_id"] = 11
        client = TestClient(app)
        response = client.post("/api/tabs/organize", json=sample_organize_data)

        data = response.json()
        assert 5 not in data["leftover_tab_ids"]
        assert 5 not in data["skipped_tab_ids"]

    def test_organize_empty_tabs(self):
        from tab_grouper.server.app import app

        client = TestClient(app)
        response = client.post("/api/tabs/organize", json={"tabs": []})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["operations"] == []

    def test_organize_validates_required_fields(self):
        from tab_grouper.server.app import app

        client = TestClient(app)
        response = client.post(
            "/api/tabs/organize",
            json={"tabs": [{"id": 1, "url": "https://example.com"}]},
        )

        assert response.status_code == 422

    def test_repeat_request_skips_clustering(self, sample_organize_data, mock_openai):
        """The leftover snapshot persists across requests in the shared cache."""
        from tab_grouper.server.app import app

        client = TestClient(app)
        client.post("/api/tabs/organize", json=sample_organize_data)
        completions = mock_openai.chat.completions.create.await_count

        data = client.post("/api/tabs/organize", json=sample_organize_data).json()

        assert data["clustering_skipped"] is True
        assert mock_openai.chat.completions.create.await_count == completions


class TestCacheEndpoint:
    """Tests for POST /api/cache/clear endpoint."""

    def test_clear_cache(self, sample_organize_data):
        from tab_grouper.server.app import app, get_cache_store

        client = TestClient(app)
        client.post("/api/tabs/organize", json=sample_organize_data)
        assert get_cache_store().get_cache(CATEGORY_NAMESPACE)

        response = client.post("/api/cache/clear")

        assert response.status_code == 200
        assert response.json()["status"] == "cleared"
        assert get_cache_store().get_cache(CATEGORY_NAMESPACE) == {}

    def test_cache_cleared_on_startup(self):
        from tab_grouper.server.app import app, get_cache_store

        get_cache_store().store(CATEGORY_NAMESPACE, "stale", "news")

        with TestClient(app):
            assert get_cache_store().get_cache(CATEGORY_NAMESPACE) == {}
