"""
API tests for the /payments endpoints.

Covers auth, response envelopes, error codes and status mapping. Business
rules are covered in depth by test_payment_service.py.
"""
import pytest

from db_models import EventMember
from middleware.auth import issue_access_token
from conftest import EVENT_WALLET, INVALID_WALLET_SHORT, PAYER_WALLET, make_txid


def _verify_body(tx_id: str = make_txid("TXAPI"), wallet: str = PAYER_WALLET) -> dict:
    return {"transactionId": tx_id, "walletAddress": wallet}


class TestAuth:

    @pytest.mark.api
    @pytest.mark.asyncio
    @pytest.mark.parametrize("method,path", [
        ("post", "/payments/event/abc/join-free"),
        ("get", "/payments/event/abc/details"),
        ("post", "/payments/event/abc/verify"),
        ("get", "/payments/my-payments"),
    ])
    async def test_missing_token_is_401(self, client, method, path):
        kwargs = {"json": _verify_body()} if path.endswith("verify") else {}
        response = await getattr(client, method)(path, **kwargs)
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "unauthorized"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_garbage_token_is_401(self, client):
        response = await client.get(
            "/payments/my-payments", headers={"Authorization": "Bearer not.a.jwt"}
        )
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid access token."

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_non_bearer_scheme_is_401(self, client):
        response = await client.get("/payments/my-payments", headers={"Authorization": "Basic abc"})
        assert response.status_code == 401


class TestPaymentDetails:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_details_for_unpaid_user(self, client, paid_event, auth_headers):
        response = await client.get(f"/payments/event/{paid_event.id}/details", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["alreadyPaid"] is False
        assert body["data"]["event"]["walletAddress"] == EVENT_WALLET
        assert body["data"]["event"]["ticketPrice"] == 5

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_details_for_member(self, client, db_session, paid_event, sample_user, auth_headers):
        db_session.add(EventMember(event_id=paid_event.id, user_id=sample_user.id, role="volunteer"))
        await db_session.commit()

        response = await client.get(f"/payments/event/{paid_event.id}/details", headers=auth_headers)
        assert response.json()["data"] == {"alreadyMember": True, "role": "volunteer"}

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_details_unknown_event(self, client, auth_headers):
        response = await client.get("/payments/event/does-not-exist/details", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"


class TestVerifyEndpoint:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_verify_success(self, client, paid_event, fake_algod, auth_headers):
        fake_algod.add_payment(make_txid("TXAPI"), receiver=EVENT_WALLET, amount=5_000_000)

        response = await client.post(
            f"/payments/event/{paid_event.id}/verify", json=_verify_body(), headers=auth_headers
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert "meta" not in body
        assert body["data"]["payment"] == {"transactionId": make_txid("TXAPI"), "amount": 5.0, "verified": True}
        assert body["data"]["message"].startswith("Payment verified")

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_then_details_reports_paid(self, client, paid_event, fake_algod, auth_headers):
        event_id = paid_event.id
        fake_algod.add_payment(make_txid("TXAPI"), receiver=EVENT_WALLET, amount=5_000_000)
        await client.post(f"/payments/event/{event_id}/verify", json=_verify_body(), headers=auth_headers)

        response = await client.get(f"/payments/event/{event_id}/details", headers=auth_headers)
        data = response.json()["data"]
        assert data["alreadyPaid"] is True
        assert data["payment"]["transactionId"] == make_txid("TXAPI")

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_verify_missing_fields(self, client, paid_event, auth_headers):
        response = await client.post(
            f"/payments/event/{paid_event.id}/verify", json={}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_verify_invalid_wallet(self, client, paid_event, auth_headers):
        response = await client.post(
            f"/payments/event/{paid_event.id}/verify",
            json=_verify_body(wallet=INVALID_WALLET_SHORT),
            headers=auth_headers,
        )
        assert response.status_code == 400

    @pytest.mark.api
    @pytest.mark.asyncio
    @pytest.mark.parametrize("tx_id", ["TX 1", "../../v2/status", "ÄÖÜ" + "A" * 49, "A" * 52 + "?x=1"])
    async def test_verify_malformed_transaction_id_is_400(self, client, paid_event, fake_algod, auth_headers, tx_id):
        response = await client.post(
            f"/payments/event/{paid_event.id}/verify", json=_verify_body(tx_id), headers=auth_headers
        )
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "validation_error"
        assert "transactionId" in error["message"]
        assert fake_algod.lookups == []

        history = await client.get("/payments/my-payments", headers=auth_headers)
        assert history.json()["data"] == []

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_verify_unknown_transaction(self, client, paid_event, auth_headers):
        response = await client.post(
            f"/payments/event/{paid_event.id}/verify", json=_verify_body(make_txid("TXGHOST")), headers=auth_headers
        )
        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "transaction_not_found"
        assert error["details"]["transactionId"] == make_txid("TXGHOST")

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_verify_insufficient_amount(self, client, paid_event, fake_algod, auth_headers):
        fake_algod.add_payment(make_txid("TXAPI"), receiver=EVENT_WALLET, amount=4_999_999)
        response = await client.post(
            f"/payments/event/{paid_event.id}/verify", json=_verify_body(), headers=auth_headers
        )
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "insufficient_amount"
        assert error["message"] == (
            "Insufficient payment amount. Expected: 5.0 ALGO, Received: 4.999999 ALGO"
        )

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_verify_receiver_mismatch(self, client, paid_event, fake_algod, auth_headers):
        fake_algod.add_payment(make_txid("TXAPI"), receiver=PAYER_WALLET, amount=5_000_000)
        response = await client.post(
            f"/payments/event/{paid_event.id}/verify", json=_verify_body(), headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "receiver_mismatch"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_verify_malformed_is_422(self, client, paid_event, fake_algod, auth_headers):
        fake_algod.add_raw(make_txid("TXAPI"), {"confirmed-round": 3})
        response = await client.post(
            f"/payments/event/{paid_event.id}/verify", json=_verify_body(), headers=auth_headers
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "malformed_transaction"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_verify_duplicate_is_409(self, client, paid_event, fake_algod, auth_headers):
        event_id = paid_event.id
        fake_algod.add_payment(make_txid("TXAPI"), receiver=EVENT_WALLET, amount=5_000_000)
        await client.post(f"/payments/event/{event_id}/verify", json=_verify_body(), headers=auth_headers)

        response = await client.post(
            f"/payments/event/{event_id}/verify", json=_verify_body(), headers=auth_headers
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "duplicate_transaction"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_verify_free_event_rejected(self, client, free_event, auth_headers):
        response = await client.post(
            f"/payments/event/{free_event.id}/verify", json=_verify_body(), headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_event_configuration"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_partial_failure_is_distinct_500(self, client, db_session, paid_event, sample_user, fake_algod, auth_headers):
        event_id = paid_event.id
        db_session.add(EventMember(event_id=event_id, user_id=sample_user.id, role="volunteer"))
        await db_session.commit()
        fake_algod.add_payment(make_txid("TXAPI"), receiver=EVENT_WALLET, amount=5_000_000)

        response = await client.post(
            f"/payments/event/{event_id}/verify", json=_verify_body(), headers=auth_headers
        )
        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "partial_failure"
        assert error["message"] == "Payment verified but failed to add you to event"
        assert error["details"]["paymentRecorded"] is True


class TestJoinFreeEndpoint:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_join_free(self, client, free_event, auth_headers):
        response = await client.post(f"/payments/event/{free_event.id}/join-free", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["eventId"] == free_event.id
        assert body["data"]["role"] == "member"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_join_twice_is_409(self, client, free_event, auth_headers):
        event_id = free_event.id
        await client.post(f"/payments/event/{event_id}/join-free", headers=auth_headers)
        response = await client.post(f"/payments/event/{event_id}/join-free", headers=auth_headers)
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "already_member"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_join_paid_event_is_400(self, client, paid_event, auth_headers):
        response = await client.post(f"/payments/event/{paid_event.id}/join-free", headers=auth_headers)
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "not_free"
        assert error["message"] == "This event requires payment"


class TestMyPayments:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_empty_history(self, client, auth_headers):
        response = await client.get("/payments/my-payments", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["data"] == []
        assert body["meta"]["total"] == 0
        assert body["meta"]["hasMore"] is False

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_history_is_scoped_to_caller(self, client, paid_event, other_user, fake_algod, auth_headers):
        event_id = paid_event.id
        fake_algod.add_payment(make_txid("TXAPI"), receiver=EVENT_WALLET, amount=5_000_000)
        await client.post(f"/payments/event/{event_id}/verify", json=_verify_body(), headers=auth_headers)

        mine = (await client.get("/payments/my-payments", headers=auth_headers)).json()
        assert [p["transactionId"] for p in mine["data"]] == [make_txid("TXAPI")]
        assert mine["data"][0]["event"]["id"] == event_id

        other_token = issue_access_token(user_id=other_user.id)
        theirs = await client.get(
            "/payments/my-payments", headers={"Authorization": f"Bearer {other_token}"}
        )
        assert theirs.json()["data"] == []

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_limit_out_of_range(self, client, auth_headers):
        response = await client.get("/payments/my-payments?limit=0", headers=auth_headers)
        assert response.status_code == 422


class TestVerifyRateLimit:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_verify_is_rate_limited(self, client, paid_event, auth_headers, monkeypatch):
        from config import settings
        monkeypatch.setattr(settings, "verify_rate_limit", 2)
        event_id = paid_event.id

        for n in range(2):
            response = await client.post(
                f"/payments/event/{event_id}/verify", json=_verify_body(make_txid(f"TXRL{n}")), headers=auth_headers
            )
            assert response.status_code == 404

        response = await client.post(
            f"/payments/event/{event_id}/verify", json=_verify_body(make_txid("TXRL9")), headers=auth_headers
        )
        assert response.status_code == 429
        assert response.json()["error"]["code"] == "rate_limited"
        assert response.headers["Retry-After"] == "60"
        assert response.headers["X-RateLimit-Remaining"] == "0"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_limit_is_shared_across_event_ids(self, client, auth_headers, monkeypatch):
        """Changing the event in the path does not buy a fresh window."""
        from config import settings
        from middleware.rate_limit import limiter
        monkeypatch.setattr(settings, "verify_rate_limit", 2)

        for n in range(2):
            response = await client.post(
                f"/payments/event/ev-{n}/verify", json=_verify_body(), headers=auth_headers
            )
            assert response.status_code == 404

        response = await client.post(
            "/payments/event/ev-9/verify", json=_verify_body(), headers=auth_headers
        )
        assert response.status_code == 429
        assert len(limiter._requests) == 1
        assert next(iter(limiter._requests)).endswith(":/payments/event/{event_id}/verify")
