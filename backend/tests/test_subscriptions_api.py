"""
Newsletter Backend: Subscription Endpoint Tests
===============================================

What:  POST /subscriptions and GET /subscriptions/confirm end to end.
How:   The real app on a throwaway SQLite database, with the email API
       replaced by a recording mock transport.

What we test:
    ✅ Valid form data stores a pending subscriber and sends one email
    ✅ Missing or invalid fields are rejected with 400
    ✅ The confirmation link confirms the subscriber
    ✅ Malformed/unknown tokens → 400/401
    ✅ Email API failure → 500, subscriber kept
"""

from urllib.parse import parse_qs, urlparse

import pytest
from sqlalchemy import func, select

from newsletter.models.subscription import Subscription, SubscriptionStatus, SubscriptionToken

from conftest import APP_BASE_URL, EMAIL_API_BASE_URL

VALID_FORM = {"name": "le guin", "email": "ursula_le_guin@gmail.com"}


async def _subscription_rows(db_session):
    result = await db_session.execute(
        select(Subscription.email, Subscription.name, Subscription.status)
    )
    return result.all()


def _token_from(link: str) -> str:
    return parse_qs(urlparse(link).query)["subscription_token"][0]


class TestSubscribe:

    @pytest.mark.asyncio
    async def test_subscribe_returns_200_for_valid_form_data(self, test_client):
        response = await test_client.post("/subscriptions", data=VALID_FORM)

        assert response.status_code == 200
        assert response.json()["message"] == "Please check your inbox to confirm your subscription."

    @pytest.mark.asyncio
    async def test_subscribe_persists_the_new_subscriber_as_pending(self, test_client, db_session):
        await test_client.post("/subscriptions", data=VALID_FORM)

        rows = await _subscription_rows(db_session)
        assert len(rows) == 1
        assert rows[0].email == "ursula_le_guin@gmail.com"
        assert rows[0].name == "le guin"
        assert rows[0].status == SubscriptionStatus.PENDING_CONFIRMATION

    @pytest.mark.asyncio
    async def test_subscribe_sends_a_confirmation_email_for_valid_data(self, test_client, email_server):
        await test_client.post("/subscriptions", data=VALID_FORM)

        assert len(email_server.requests) == 1
        request = email_server.requests[0]
        assert str(request.url) == f"{EMAIL_API_BASE_URL}/mail/send"
        assert request.headers["Authorization"] == "Bearer my-secret-token"
        body = email_server.bodies()[0]
        assert body["subject"] == "Welcome!"
        assert body["personalizations"][0]["to"][0]["email"] == "ursula_le_guin@gmail.com"

    @pytest.mark.asyncio
    async def test_subscribe_sends_a_confirmation_email_with_a_link(self, test_client, email_server):
        await test_client.post("/subscriptions", data=VALID_FORM)

        links = email_server.confirmation_links()
        assert links["html"] == links["plain_text"]
        assert links["html"].startswith(f"{APP_BASE_URL}/subscriptions/confirm?subscription_token=")
        assert len(_token_from(links["html"])) == 25

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "form, description",
        [
            ({"name": "le guin"}, "missing the email"),
            ({"email": "ursula_le_guin@gmail.com"}, "missing the name"),
            ({}, "missing both name and email"),
        ],
    )
    async def test_subscribe_returns_400_when_data_is_missing(
        self, test_client, email_server, form, description
    ):
        response = await test_client.post("/subscriptions", data=form)

        assert response.status_code == 400, f"did not fail with 400 when {description}"
        assert response.json()["error"] == "validation_error"
        assert email_server.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "form, description",
        [
            ({"name": "", "email": "ursula_le_guin@gmail.com"}, "empty name"),
            ({"name": "Ursula", "email": ""}, "empty email"),
            ({"name": "Ursula", "email": "definitely-not-an-email"}, "invalid email"),
            ({"name": "<script>", "email": "ursula_le_guin@gmail.com"}, "forbidden characters"),
            ({"name": "a" * 257, "email": "ursula_le_guin@gmail.com"}, "name too long"),
        ],
    )
    async def test_subscribe_returns_400_when_fields_are_present_but_invalid(
        self, test_client, db_session, form, description
    ):
        response = await test_client.post("/subscriptions", data=form)

        assert response.status_code == 400, f"did not return 400 for {description}"
        assert await _subscription_rows(db_session) == []

    @pytest.mark.asyncio
    async def test_subscribe_fails_if_the_email_api_errors(self, test_client, email_server, db_session):
        email_server.status_code = 500

        response = await test_client.post("/subscriptions", data=VALID_FORM)

        assert response.status_code == 500
        assert response.json()["error"] == "email_delivery_error"
        # Stored before sending; a retry re-sends with a fresh token
        assert len(await _subscription_rows(db_session)) == 1

    @pytest.mark.asyncio
    async def test_subscribing_twice_while_pending_sends_a_second_link(
        self, test_client, email_server, db_session
    ):
        await test_client.post("/subscriptions", data=VALID_FORM)
        response = await test_client.post("/subscriptions", data=VALID_FORM)

        assert response.status_code == 200
        assert len(email_server.requests) == 2
        first = email_server.confirmation_links(0)["html"]
        second = email_server.confirmation_links(1)["html"]
        assert first != second
        assert len(await _subscription_rows(db_session)) == 1
        tokens = await db_session.execute(select(func.count()).select_from(SubscriptionToken))
        assert tokens.scalar_one() == 2

    @pytest.mark.asyncio
    async def test_subscribing_after_confirmation_sends_nothing(self, test_client, email_server):
        await test_client.post("/subscriptions", data=VALID_FORM)
        link = email_server.confirmation_links()["html"]
        await test_client.get(f"/subscriptions/confirm?subscription_token={_token_from(link)}")

        response = await test_client.post("/subscriptions", data=VALID_FORM)

        assert response.status_code == 200
        assert response.json()["message"] == "You are already subscribed."
        assert len(email_server.requests) == 1


class TestConfirm:

    @pytest.mark.asyncio
    async def test_confirmations_without_token_are_rejected_with_a_400(self, test_client):
        response = await test_client.get("/subscriptions/confirm")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_malformed_token_is_rejected_with_a_400(self, test_client):
        response = await test_client.get("/subscriptions/confirm?subscription_token=abc")
        assert response.status_code == 400
        assert response.json()["details"] == {"field": "subscription_token"}

    @pytest.mark.asyncio
    async def test_unknown_token_is_rejected_with_a_401(self, test_client):
        response = await test_client.get(
            "/subscriptions/confirm?subscription_token=aaaaaaaaaaaaaaaaaaaaaaaaa"
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_the_link_returned_by_subscribe_returns_a_200_if_called(
        self, test_client, email_server
    ):
        await test_client.post("/subscriptions", data=VALID_FORM)
        link = urlparse(email_server.confirmation_links()["html"])

        response = await test_client.get(f"{link.path}?{link.query}")

        assert response.status_code == 200
        assert response.json()["message"] == "Your subscription is confirmed."

    @pytest.mark.asyncio
    async def test_clicking_on_the_confirmation_link_confirms_a_subscriber(
        self, test_client, email_server, db_session
    ):
        await test_client.post("/subscriptions", data=VALID_FORM)
        link = urlparse(email_server.confirmation_links()["html"])

        await test_client.get(f"{link.path}?{link.query}")

        rows = await _subscription_rows(db_session)
        assert rows[0].status == SubscriptionStatus.CONFIRMED
