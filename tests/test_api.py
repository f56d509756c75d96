"""Tests for the HTTP API."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from buildcache.api import create_app
from buildcache.config import CacheConfig, ServerConfig, StorageConfig
from buildcache.errors import ProcessFailure
from buildcache.storage.local import LocalProvider
from buildcache.storage.location import ArtifactLocation

AUTH = {"Authorization": "Bearer secret"}
ARTIFACT_URL = "/v8/artifacts/artifact_123.tar.zst"


@pytest.fixture
def config(tmp_path) -> CacheConfig:
    return CacheConfig(
        server=ServerConfig(tokens=["secret", "other"], body_limit=1024),
        storage=StorageConfig(path=str(tmp_path / "cache"), use_tmp=False),
    )


@pytest.fixture
def location(config) -> ArtifactLocation:
    return ArtifactLocation(LocalProvider(config.storage.path, use_tmp=False))


@pytest.fixture
def client(config, location):
    with TestClient(create_app(config, location)) as test_client:
        yield test_client


class TestStatus:
    def test_status_needs_no_token(self, client):
        response = client.get("/v8/artifacts/status")
        assert response.status_code == 200
        assert response.json() == {"status": "enabled"}


class TestAuth:
    def test_missing_header(self, client):
        response = client.get(ARTIFACT_URL, params={"teamId": "team_abc"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing Authorization header"

    def test_unknown_token(self, client):
        response = client.get(
            ARTIFACT_URL,
            params={"teamId": "team_abc"},
            headers={"Authorization": "Bearer nope"},
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid authorization token"

    def test_any_configured_token(self, client):
        response = client.post(
            "/v8/artifacts/events", headers={"Authorization": "Bearer other"}
        )
        assert response.status_code == 200


class TestArtifacts:
    def test_upload_then_download(self, client):
        response = client.put(
            ARTIFACT_URL,
            params={"teamId": "team_abc"},
            headers={**AUTH, "Content-Type": "application/octet-stream"},
            content=b"\x01\x02\x03",
        )
        assert response.status_code == 200
        assert response.json() == {"urls": ["team_abc/artifact_123.tar.zst"]}

        head = client.head(ARTIFACT_URL, params={"teamId": "team_abc"}, headers=AUTH)
        assert head.status_code == 200

        download = client.get(ARTIFACT_URL, params={"teamId": "team_abc"}, headers=AUTH)
        assert download.status_code == 200
        assert download.headers["content-type"] == "application/octet-stream"
        assert download.content == b"\x01\x02\x03"

    def test_slug_names_the_team(self, client):
        client.put(ARTIFACT_URL, params={"slug": "acme"}, headers=AUTH, content=b"x")

        download = client.get(ARTIFACT_URL, params={"teamId": "acme"}, headers=AUTH)
        assert download.content == b"x"

    def test_missing_artifact(self, client):
        response = client.get(ARTIFACT_URL, params={"teamId": "team_abc"}, headers=AUTH)
        assert response.status_code == 404
        assert response.json()["detail"] == (
            "Artifact team_abc/artifact_123.tar.zst doesn't exist."
        )

        head = client.head(ARTIFACT_URL, params={"teamId": "team_abc"}, headers=AUTH)
        assert head.status_code == 404

    def test_team_required(self, client):
        response = client.get(ARTIFACT_URL, headers=AUTH)
        assert response.status_code == 400

    def test_traversal_rejected(self, client):
        response = client.put(ARTIFACT_URL, params={"teamId": ".."}, headers=AUTH, content=b"x")
        assert response.status_code == 400

    def test_body_limit(self, client):
        response = client.put(
            ARTIFACT_URL, params={"teamId": "team_abc"}, headers=AUTH, content=b"x" * 2048
        )
        assert response.status_code == 413

        head = client.head(ARTIFACT_URL, params={"teamId": "team_abc"}, headers=AUTH)
        assert head.status_code == 404

    def test_backend_failure_surfaces_output(self, client, location):
        location.provider.after_create_write_stream = AsyncMock(
            side_effect=ProcessFailure(1, "! [rejected] main -> main (fetch first)")
        )

        response = client.put(
            ARTIFACT_URL, params={"teamId": "team_abc"}, headers=AUTH, content=b"x"
        )

        assert response.status_code == 500
        assert "[rejected]" in response.json()["detail"]
