"""Unit tests for API routes.

Uses an async client over the ASGI app with the in-memory DB patched in by
conftest.py.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from seriesledger.main import app
from seriesledger.services import episode_ledger
from tests.unit.conftest import seed_client, seed_history, seed_subscription


@pytest.fixture
async def client():
    """Provide an async HTTP client for the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestEpisodes:
    async def test_grouped_ledger(self, client):
        sub = await seed_subscription()
        for season, episode in [(1, 1), (1, 2), (2, 1)]:
            await episode_ledger.record(sub.id, season, episode)

        response = await client.get(f"/api/series/{sub.id}/episodes")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Breaking Good"
        assert data["total"] == 3
        assert data["seasons"] == {"1": [1, 2], "2": [1]}

    async def test_unknown_subscription(self, client):
        response = await client.get("/api/series/999/episodes")
        assert response.status_code == 404
        assert response.json()["detail"] == "Subscription 999 not found"


class TestSync:
    async def test_sync_uses_configured_backends(self, client):
        sub = await seed_subscription(season=2)
        await seed_client(is_default=True)
        await seed_history("Breaking.Good.S02E01")

        response = await client.post(f"/api/series/{sub.id}/sync")

        assert response.status_code == 200
        data = response.json()
        assert data["inserted"] == 1
        assert data["episodes"] == {"2": [1]}

    async def test_unknown_subscription(self, client):
        response = await client.post("/api/series/999/sync")
        assert response.status_code == 404


class TestCheck:
    async def test_redundant_title(self, client):
        sub = await seed_subscription(name="Breaking Good")
        await seed_history("Breaking Good S02E05")

        response = await client.post(
            f"/api/series/{sub.id}/check", json={"title": "Breaking.Good.S02E05.1080p"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["is_redundant"] is True
        assert data["season"] == 2
        assert data["episodes"] == [5]
        assert data["owned_episodes"] == [5]

    async def test_season_pack(self, client):
        sub = await seed_subscription()
        response = await client.post(
            f"/api/series/{sub.id}/check", json={"title": "Breaking.Good.S02.Complete"}
        )
        data = response.json()
        assert data["is_redundant"] is False
        assert data["episodes"] == []


class TestFileSelect:
    async def test_selects_missing_episodes(self, client):
        files = [{"name": f"Show.S01E{ep:02d}.mkv", "size": 1} for ep in range(1, 5)]
        files.append({"name": "Show.nfo", "size": 1})

        response = await client.post(
            "/api/files/select",
            json={"files": files, "downloaded_episodes": [1, 2], "target_season": 1},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["selected_file_indices"] == [2, 3, 4]
        assert sorted(data["missing_episodes"]) == [3, 4]
        assert data["has_new"] is True
        assert data["is_redundant"] is False

    async def test_nothing_new(self, client):
        files = [{"name": "Show.S01E01.mkv"}, {"name": "Show.S01E01.srt"}]
        response = await client.post(
            "/api/files/select",
            json={"files": files, "downloaded_episodes": [1], "target_season": 1},
        )
        data = response.json()
        assert data["selected_file_indices"] == []
        assert data["has_new"] is False


class TestSmartRegex:
    async def test_rebuild(self, client):
        sub = await seed_subscription(name="From", season=2, quality="1080p")
        response = await client.post(f"/api/series/{sub.id}/smart-regex")
        assert response.status_code == 200
        assert response.json()["smart_regex"] == "From.*S0?2.*1080[pi]"

    async def test_unknown_subscription(self, client):
        response = await client.post("/api/series/999/smart-regex")
        assert response.status_code == 404


class TestCheckCompletion:
    async def test_no_clients(self, client):
        await seed_history("Show.S01E01", is_finished=False)
        response = await client.post("/api/downloads/check-completion")
        assert response.status_code == 200
        assert response.json() == {"finished": 0}
