"""HTTP contract tests: status codes and error envelopes per endpoint."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from conftest import FRIEND_WALLET, OWNER_WALLET
from coursepass.core.exceptions import StorageContentionError


@pytest.fixture
def seeded(client: TestClient) -> dict[str, int]:
    """Owner with a minted course, created through the API."""
    owner_id = client.post(
        "/v1/users/connect-wallet", json={"wallet_address": OWNER_WALLET}
    ).json()["id"]
    course_id = client.post(
        "/v1/courses", json={"creator_id": owner_id, "title": "DeFi Basics"}
    ).json()["id"]
    ownership_id = client.post(
        "/v1/ownerships/mint",
        json={"course_id": course_id, "owner_id": owner_id, "token_id": "nft-1"},
    ).json()["id"]
    return {"owner_id": owner_id, "course_id": course_id, "ownership_id": ownership_id}


class TestUsersRouter:
    def test_register_and_get(self, client: TestClient):
        created = client.post(
            "/v1/users",
            json={"username": "alice", "wallet_address": OWNER_WALLET, "is_creator": True},
        )
        assert created.status_code == 201
        assert created.json()["wallet_address"] == OWNER_WALLET.lower()

        fetched = client.get(f"/v1/users/{created.json()['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["username"] == "alice"

    def test_duplicate_username_conflict(self, client: TestClient):
        client.post("/v1/users", json={"username": "alice"})

        response = client.post("/v1/users", json={"username": "alice"})

        assert response.status_code == 409
        assert response.json()["code"] == "username_taken"
        assert response.json()["error"] is True

    def test_connect_wallet_is_case_insensitive(self, client: TestClient):
        first = client.post(
            "/v1/users/connect-wallet", json={"wallet_address": OWNER_WALLET.upper()}
        )
        second = client.post(
            "/v1/users/connect-wallet", json={"wallet_address": OWNER_WALLET.lower()}
        )

        assert first.json()["id"] == second.json()["id"]

    def test_blank_wallet_rejected(self, client: TestClient):
        response = client.post("/v1/users/connect-wallet", json={"wallet_address": "  "})

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_wallet_address"

    def test_unknown_user(self, client: TestClient):
        response = client.get("/v1/users/999")

        assert response.status_code == 404
        assert response.json()["code"] == "user_not_found"
        assert "request_id" in response.json()


class TestCoursesRouter:
    def test_publish_toggle(self, client: TestClient, seeded):
        course_id = seeded["course_id"]

        published = client.post(f"/v1/courses/{course_id}/publish")
        assert published.json()["is_published"] is True
        assert client.get("/v1/courses").json()["total"] == 1

        hidden = client.post(
            f"/v1/courses/{course_id}/publish", json={"is_published": False}
        )
        assert hidden.json()["is_published"] is False
        assert client.get("/v1/courses").json()["total"] == 0

    def test_unknown_course(self, client: TestClient):
        assert client.get("/v1/courses/404").status_code == 404
        assert client.post("/v1/courses/404/publish").status_code == 404

    def test_unknown_creator(self, client: TestClient):
        response = client.post("/v1/courses", json={"creator_id": 5, "title": "X"})

        assert response.status_code == 404


class TestOwnershipsRouter:
    def test_duplicate_mint_conflict(self, client: TestClient, seeded):
        response = client.post(
            "/v1/ownerships/mint",
            json={
                "course_id": seeded["course_id"],
                "owner_id": seeded["owner_id"],
                "token_id": "nft-again",
            },
        )

        assert response.status_code == 409
        assert response.json()["code"] == "duplicate_ownership"

    def test_mint_unknown_course(self, client: TestClient, seeded):
        response = client.post(
            "/v1/ownerships/mint",
            json={"course_id": 999, "owner_id": seeded["owner_id"], "token_id": "t"},
        )

        assert response.status_code == 404
        assert response.json()["code"] == "course_not_found"

    def test_list_owned(self, client: TestClient, seeded):
        response = client.get(f"/v1/ownerships/owned/{seeded['owner_id']}")

        assert response.status_code == 200
        assert response.json()["total"] == 1
        assert response.json()["items"][0]["title"] == "DeFi Basics"


class TestDelegationRouter:
    def _share(self, client: TestClient, ownership_id: int, expires_at: str):
        return client.post(
            "/v1/access/share",
            json={
                "ownership_id": ownership_id,
                "recipient_address": FRIEND_WALLET,
                "expires_at": expires_at,
            },
        )

    def test_share_list_and_revoke(self, client: TestClient, seeded, clock):
        expires_at = (clock() + timedelta(days=2)).isoformat()

        shared = self._share(client, seeded["ownership_id"], expires_at)
        assert shared.status_code == 201
        grant_id = shared.json()["id"]
        assert shared.json()["is_live"] is True

        duplicate = self._share(client, seeded["ownership_id"], expires_at)
        assert duplicate.status_code == 409
        assert duplicate.json()["code"] == "duplicate_active_grant"

        grants = client.get(f"/v1/access/ownerships/{seeded['ownership_id']}").json()
        assert grants["live_count"] == 1

        for _ in range(2):
            revoked = client.post(f"/v1/access/revoke/{grant_id}")
            assert revoked.status_code == 200
            assert revoked.json()["revoked"] is True

        assert client.get(f"/v1/access/shared/{FRIEND_WALLET}").json()["total"] == 0

    def test_share_with_past_expiry(self, client: TestClient, seeded, clock):
        response = self._share(client, seeded["ownership_id"], clock().isoformat())

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_expiry"

    def test_share_unknown_ownership(self, client: TestClient, clock):
        expires_at = (clock() + timedelta(days=1)).isoformat()

        response = self._share(client, 123, expires_at)

        assert response.status_code == 404

    def test_storage_contention_is_service_unavailable(
        self, client: TestClient, seeded, store, clock, monkeypatch
    ):
        def busy(grant, conflicts):
            raise StorageContentionError()

        monkeypatch.setattr(store, "insert_grant", busy)

        response = self._share(
            client, seeded["ownership_id"], (clock() + timedelta(days=1)).isoformat()
        )

        assert response.status_code == 503
        assert response.json()["code"] == "storage_contention"

    def test_revoke_unknown_grant(self, client: TestClient):
        response = client.post("/v1/access/revoke/999")

        assert response.status_code == 404
        assert response.json()["code"] == "grant_not_found"


class TestAccessRequestsRouter:
    def _submit(self, client: TestClient, course_id: int, **overrides):
        payload = {
            "course_id": course_id,
            "requester_address": FRIEND_WALLET,
            "owner_address": OWNER_WALLET,
            "requested_duration_days": 5,
        }
        payload.update(overrides)
        return client.post("/v1/access-requests", json=payload)

    @pytest.mark.parametrize("days", [0, 91])
    def test_invalid_duration(self, client: TestClient, seeded, days):
        response = self._submit(client, seeded["course_id"], requested_duration_days=days)

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_duration"

    def test_self_request(self, client: TestClient, seeded):
        response = self._submit(
            client, seeded["course_id"], requester_address=OWNER_WALLET.upper()
        )

        assert response.status_code == 400
        assert response.json()["code"] == "self_request"

    def test_listings(self, client: TestClient, seeded):
        self._submit(client, seeded["course_id"])

        by_course = client.get(f"/v1/access-requests/course/{seeded['course_id']}")
        sent = client.get(f"/v1/access-requests/requester/{FRIEND_WALLET.upper()}")
        received = client.get(f"/v1/access-requests/owner/{OWNER_WALLET}")

        for response in (by_course, sent, received):
            assert response.status_code == 200
            assert response.json()["total"] == 1
            assert response.json()["items"][0]["course"]["title"] == "DeFi Basics"

    def test_reject_then_approve_conflicts(self, client: TestClient, seeded):
        request_id = self._submit(client, seeded["course_id"]).json()["id"]

        rejected = client.patch(
            f"/v1/access-requests/{request_id}/status", json={"status": "rejected"}
        )
        assert rejected.status_code == 200
        assert rejected.json()["access_granted"] is None

        again = client.patch(
            f"/v1/access-requests/{request_id}/status", json={"status": "approved"}
        )
        assert again.status_code == 409
        assert again.json()["code"] == "invalid_transition"

    def test_approval_with_missing_ownership_still_succeeds(self, client: TestClient):
        owner_id = client.post(
            "/v1/users/connect-wallet", json={"wallet_address": OWNER_WALLET}
        ).json()["id"]
        course_id = client.post(
            "/v1/courses", json={"creator_id": owner_id, "title": "Unminted"}
        ).json()["id"]
        request_id = self._submit(client, course_id).json()["id"]

        response = client.patch(
            f"/v1/access-requests/{request_id}/status", json={"status": "approved"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "approved"
        assert response.json()["access_granted"] is False
        assert response.json()["grant_error"]["code"] == "ownership_missing"

    def test_unknown_status_value(self, client: TestClient, seeded):
        request_id = self._submit(client, seeded["course_id"]).json()["id"]

        response = client.patch(
            f"/v1/access-requests/{request_id}/status", json={"status": "archived"}
        )

        assert response.status_code == 422

    def test_unknown_request(self, client: TestClient):
        response = client.patch(
            "/v1/access-requests/77/status", json={"status": "approved"}
        )

        assert response.status_code == 404


class TestAccessRouter:
    def test_check_requires_wallet(self, client: TestClient, seeded):
        response = client.post(
            "/v1/access/check", json={"course_id": seeded["course_id"], "wallet_address": ""}
        )

        assert response.status_code == 422

    def test_check_blank_wallet(self, client: TestClient, seeded):
        response = client.post(
            "/v1/access/check",
            json={"course_id": seeded["course_id"], "wallet_address": "   "},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_wallet_address"

    def test_response_carries_request_id_header(self, client: TestClient, seeded):
        response = client.post(
            "/v1/access/check",
            json={"course_id": seeded["course_id"], "wallet_address": OWNER_WALLET},
        )

        assert response.headers.get("X-Request-ID")
