"""
Integration tests for the admin HTTP API.

Tests cover:
- Admin guard (401/403)
- Backup download headers and content
- Restore responses and error mapping
- Rate limiting
"""

import asyncio
import re

import pytest
from fastapi.testclient import TestClient

from ortomat_server.api import create_app
from ortomat_server.auth import create_access_token
from ortomat_server.auth.passwords import verify_password
from ortomat_server.config import BackupConfig, ServerConfig, StorageConfig, ThrottleConfig
from ortomat_server.errors import StorageError
from ortomat_server.store import OrtomatStore
from ortomat_server.tools.seed import seed_demo_data

ROUNDS = 4
FILENAME_PATTERN = re.compile(
    r'^attachment; filename="ortomat-backup-\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}\.json"$'
)


def _config(data_dir, throttle=None):
    return ServerConfig(
        storage=StorageConfig(data_dir=data_dir, wal_mode=False),
        backup=BackupConfig(bcrypt_rounds=ROUNDS),
        throttle=throttle or ThrottleConfig(backup_limit=100, restore_limit=100),
    )


def _seed(data_dir):
    store = OrtomatStore(data_dir, wal_mode=False)

    async def run():
        await store.initialize()
        await seed_demo_data(store, bcrypt_rounds=ROUNDS)

    asyncio.run(run())
    return store


def _auth(config, role="ADMIN", subject="user-admin"):
    token = create_access_token(config.auth, subject, role)
    return {"Authorization": f"Bearer {token}"}


class TestAdminApi:
    """Tests for /api/v1/admin endpoints."""

    @pytest.fixture
    def config(self, data_dir):
        return _config(data_dir)

    @pytest.fixture
    def store(self, data_dir):
        return _seed(data_dir)

    @pytest.fixture
    def client(self, config, store):
        with TestClient(create_app(config, store)) as client:
            yield client

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "ortomat-backup"}

    @pytest.mark.parametrize(
        "method,path", [("get", "/api/v1/admin/backup"), ("post", "/api/v1/admin/restore")]
    )
    def test_requires_token(self, client, method, path):
        response = getattr(client, method)(path)

        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHENTICATED"

    def test_invalid_token(self, client):
        response = client.get(
            "/api/v1/admin/backup", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401

    @pytest.mark.parametrize("role", ["DOCTOR", "COURIER"])
    def test_requires_admin_role(self, client, config, role):
        response = client.get("/api/v1/admin/backup", headers=_auth(config, role=role))

        assert response.status_code == 403
        assert response.json()["error_code"] == "FORBIDDEN"

    def test_backup_download(self, client, config):
        response = client.get("/api/v1/admin/backup", headers=_auth(config))

        assert response.status_code == 200
        assert FILENAME_PATTERN.match(response.headers["content-disposition"])

        body = response.json()
        assert body["version"] == "1.0"
        assert body["timestamp"].endswith("Z")
        assert len(body["data"]) == 11
        assert len(body["data"]["users"]) == 3
        assert all("password" not in user for user in body["data"]["users"])

    def test_backup_failure(self, client, config, monkeypatch):
        async def broken_export(now=None):
            raise StorageError("database is locked")

        monkeypatch.setattr(client.app.state.exporter, "export", broken_export)

        response = client.get("/api/v1/admin/backup", headers=_auth(config))

        assert response.status_code == 500
        assert response.json()["error"] == "Backup creation failed: database is locked"

    def test_restore_round_trip(self, client, config, store):
        snapshot = client.get("/api/v1/admin/backup", headers=_auth(config)).json()

        response = client.post("/api/v1/admin/restore", headers=_auth(config), json=snapshot)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Data restored from backup"
        assert body["restored"]["users"] == 3
        assert body["restored"]["cells"] == 8
        assert body["accounts_reset"] == 3

        users = asyncio.run(store.find_all("users"))
        assert all(verify_password("password123", user["password"]) for user in users)

    def test_restore_missing_data(self, client, config, store):
        response = client.post(
            "/api/v1/admin/restore", headers=_auth(config), json={"version": "1.0"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid backup format: missing data"
        assert asyncio.run(store.count("users")) == 3

    def test_restore_invalid_json(self, client, config):
        headers = {**_auth(config), "Content-Type": "application/json"}
        response = client.post("/api/v1/admin/restore", headers=headers, content=b"{not json")

        assert response.status_code == 400
        assert response.json()["error_code"] == "SNAPSHOT_FORMAT_ERROR"

    @pytest.mark.parametrize("version", [["1.0"], {"v": 1}, 1.0])
    def test_restore_rejects_non_string_version(self, client, config, store, version):
        response = client.post(
            "/api/v1/admin/restore",
            headers=_auth(config),
            json={"version": version, "data": {}},
        )

        assert response.status_code == 400
        assert response.json()["error"].startswith("Unsupported backup version")
        assert asyncio.run(store.count("users")) == 3

    def test_restore_unknown_kind(self, client, config):
        response = client.post(
            "/api/v1/admin/restore",
            headers=_auth(config),
            json={"version": "1.0", "data": {"orders": []}},
        )

        assert response.status_code == 400
        assert response.json()["details"]["errors"] == ["unknown kind: orders"]

    def test_restore_storage_failure(self, client, config, store):
        document = {
            "version": "1.0",
            "data": {
                "cells": [
                    {
                        "id": "c1",
                        "number": 1,
                        "ortomat_id": "ortomat-missing",
                        "created_at": "2026-10-19T06:15:00.000Z",
                    }
                ]
            },
        }

        response = client.post("/api/v1/admin/restore", headers=_auth(config), json=document)

        assert response.status_code == 500
        assert response.json()["error"].startswith("Restore failed:")
        assert asyncio.run(store.count("cells")) == 8


class TestRateLimits:
    """Tests for per-caller throttling of the admin endpoints."""

    @pytest.fixture
    def config(self, data_dir):
        return _config(data_dir, ThrottleConfig())

    @pytest.fixture
    def client(self, config, data_dir):
        with TestClient(create_app(config, _seed(data_dir))) as client:
            yield client

    def test_backup_limited_to_two_per_window(self, client, config):
        headers = _auth(config)

        assert client.get("/api/v1/admin/backup", headers=headers).status_code == 200
        assert client.get("/api/v1/admin/backup", headers=headers).status_code == 200

        response = client.get("/api/v1/admin/backup", headers=headers)
        assert response.status_code == 429
        assert response.json()["error_code"] == "RATE_LIMITED"
        assert 0 < int(response.headers["retry-after"]) <= 3600

    def test_restore_limited_to_one_per_window(self, client, config):
        headers = _auth(config)
        document = {"version": "1.0", "data": {}}

        assert client.post("/api/v1/admin/restore", headers=headers, json=document).status_code == 200

        response = client.post("/api/v1/admin/restore", headers=headers, json=document)
        assert response.status_code == 429

    def test_limits_are_per_caller(self, client, config):
        document = {"version": "1.0", "data": {}}

        first = client.post(
            "/api/v1/admin/restore", headers=_auth(config, subject="admin-1"), json=document
        )
        second = client.post(
            "/api/v1/admin/restore", headers=_auth(config, subject="admin-2"), json=document
        )

        assert first.status_code == 200
        assert second.status_code == 200

    def test_unauthenticated_requests_not_counted(self, client, config):
        for _ in range(3):
            assert client.get("/api/v1/admin/backup").status_code == 401

        assert client.get("/api/v1/admin/backup", headers=_auth(config)).status_code == 200
