"""Tests for the HTTP API."""
from unittest.mock import AsyncMock

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from youtube_insights.api import main
from youtube_insights.api.routes.videos import get_engine
from youtube_insights.config import settings
from youtube_insights.core.insights_engine import InsightsEngine
from youtube_insights.models import PipelineMode

from conftest import IN_MEMORY_URL, FakeEmbeddingClient, FakeIngestion, FakeLLM

VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest.fixture
def client(monkeypatch):
    """Test client backed by an in-memory store."""
    monkeypatch.setattr(settings, "database_url", IN_MEMORY_URL)
    monkeypatch.setattr(main, "configure_logging", lambda *args, **kwargs: None)

    with TestClient(main.app) as test_client:
        yield test_client

    main.app.dependency_overrides.clear()


@pytest.fixture
def offline_engine(client, test_settings, sample_video_info):
    """Route runs through a real engine with offline collaborators."""

    def build_engine(request: Request):
        return InsightsEngine(
            settings=test_settings,
            ingestion=FakeIngestion(sample_video_info),
            llm=FakeLLM(),
            embedding_client=FakeEmbeddingClient(),
            store=request.app.state.store
        )

    main.app.dependency_overrides[get_engine] = build_engine
    return client


class TestHealth:
    """Test cases for the health endpoint."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAnalyze:
    """Test cases for scheduling runs."""

    def test_schedules_run(self, client):
        """Test that the run is handed to a background task."""
        engine = AsyncMock()
        main.app.dependency_overrides[get_engine] = lambda: engine

        response = client.post("/api/v1/videos/analyze", json={"url": VIDEO_URL, "mode": "content"})

        assert response.status_code == 202
        body = response.json()
        assert body["video_id"] == "dQw4w9WgXcQ"
        assert body["mode"] == "content"
        assert body["status"] == "accepted"
        engine.run.assert_awaited_once_with(VIDEO_URL, PipelineMode.CONTENT)

    def test_invalid_url(self, client):
        main.app.dependency_overrides[get_engine] = lambda: AsyncMock()

        response = client.post("/api/v1/videos/analyze", json={"url": "https://example.com/watch"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_VIDEO_ID"

    def test_background_failure_is_contained(self, client):
        engine = AsyncMock()
        engine.run.side_effect = RuntimeError("provider down")
        main.app.dependency_overrides[get_engine] = lambda: engine

        response = client.post("/api/v1/videos/analyze", json={"url": VIDEO_URL})

        assert response.status_code == 202


class TestMatches:
    """Test cases for stored matches."""

    def test_unknown_video(self, client):
        response = client.get("/api/v1/videos/unknownvid1/matches")

        assert response.status_code == 404

    def test_invalid_k(self, client):
        response = client.get("/api/v1/videos/dQw4w9WgXcQ/matches", params={"k": 0})

        assert response.status_code == 422

    def test_matches_after_analysis(self, offline_engine):
        """Test that matches are computed from what the run stored."""
        response = offline_engine.post("/api/v1/videos/analyze", json={"url": VIDEO_URL})
        assert response.status_code == 202

        response = offline_engine.get("/api/v1/videos/dQw4w9WgXcQ/matches", params={"k": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["video_title"] == "Understanding Machine Learning"
        assert body["k"] == 2
        assert len(body["matches"]) == 6

        best = [match["ranked"][0]["distance"] for match in body["matches"]]
        assert best == sorted(best)
        assert all(len(match["ranked"]) <= 2 for match in body["matches"])
