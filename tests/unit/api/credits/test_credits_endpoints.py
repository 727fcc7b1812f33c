"""Credits endpoints tests."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from src.api.core.messages import MessageCode
from src.modules.credits.deduction import CreditDeductionService
from src.utils.date_helpers import utc_now
from tests.factories import SubscriptionFactory, UsageRecordFactory
from tests.utils.assertions import (
    assert_authentication_error,
    assert_error_response,
    assert_success_response,
    assert_validation_error,
)


@pytest.mark.asyncio
async def test_benefits_for_new_user_are_empty(app, authorized_client: AsyncClient):
    response = await authorized_client.get("/v1/credits/benefits")

    assert_success_response(
        response,
        data_assertions={
            "active_plan_id": None,
            "subscription_status": None,
            "total_available_credits": 0,
            "subscription_credits_balance": 0,
            "one_time_credits_balance": 0,
        },
    )


@pytest.mark.asyncio
async def test_benefits_reflect_plan_and_balances(
    app, authorized_client: AsyncClient, persist, user_id
):
    await persist(
        UsageRecordFactory,
        user_id=user_id,
        subscription_credits_balance=120,
        one_time_credits_balance=30,
    )
    await persist(
        SubscriptionFactory,
        user_id=user_id,
        plan_id="plan_pro_monthly",
        status="active",
        current_period_end=utc_now() + timedelta(days=12),
    )

    response = await authorized_client.get("/v1/credits/benefits")

    assert_success_response(
        response,
        data_assertions={
            "active_plan_id": "plan_pro_monthly",
            "subscription_status": "active",
            "total_available_credits": 150,
        },
    )


@pytest.mark.asyncio
async def test_benefits_require_token(app, public_client: AsyncClient):
    response = await public_client.get("/v1/credits/benefits")

    assert_authentication_error(response)


@pytest.mark.asyncio
async def test_benefits_reject_bad_token(app, public_client: AsyncClient):
    response = await public_client.get(
        "/v1/credits/benefits", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert_error_response(
        response, MessageCode.INVALID_TOKEN, status.HTTP_401_UNAUTHORIZED
    )


@pytest.mark.asyncio
async def test_anonymous_token_is_forbidden(
    app, public_client: AsyncClient, jwt_token_factory, user_id
):
    token = jwt_token_factory(str(user_id), role="anon")

    response = await public_client.get(
        "/v1/credits/benefits", headers={"Authorization": f"Bearer {token}"}
    )

    assert_error_response(response, MessageCode.FORBIDDEN, status.HTTP_403_FORBIDDEN)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path, expected_subscription, expected_one_time",
    [
        ("/v1/credits/deduct/one-time", 10, 2),
        ("/v1/credits/deduct/subscription", 2, 10),
        ("/v1/credits/deduct/priority-subscription", 2, 10),
        ("/v1/credits/deduct/priority-one-time", 10, 2),
    ],
)
async def test_deduct_routes_use_their_strategy(
    app,
    authorized_client: AsyncClient,
    persist,
    user_id,
    path,
    expected_subscription,
    expected_one_time,
):
    await persist(
        UsageRecordFactory,
        user_id=user_id,
        subscription_credits_balance=10,
        one_time_credits_balance=10,
    )

    response = await authorized_client.post(path, json={"amount": 8})

    assert_success_response(
        response,
        expected_message_code=MessageCode.CREDITS_DEDUCTED,
        data_assertions={
            "success": True,
            "new_subscription_balance": expected_subscription,
            "new_one_time_balance": expected_one_time,
            "new_total_balance": 12,
        },
    )


@pytest.mark.asyncio
async def test_insufficient_credits_is_not_an_error_status(
    app, authorized_client: AsyncClient, persist, user_id
):
    await persist(UsageRecordFactory, user_id=user_id, one_time_credits_balance=2)

    response = await authorized_client.post(
        "/v1/credits/deduct/one-time", json={"amount": 5, "notes": "export"}
    )

    assert_success_response(
        response,
        expected_message_code=MessageCode.INSUFFICIENT_CREDITS,
        data_assertions={"success": False, "new_one_time_balance": 2},
    )
    assert response.json()["message"] == "Insufficient one-time credits."


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"amount": 0}, {"amount": -4}, {"amount": "ten"}, {}])
async def test_deduct_rejects_invalid_body(
    app, authorized_client: AsyncClient, body
):
    response = await authorized_client.post(
        "/v1/credits/deduct/priority-one-time", json=body
    )

    assert_validation_error(response)


@pytest.mark.asyncio
async def test_store_outage_maps_to_retryable_error(
    app, authorized_client: AsyncClient
):
    outage = OperationalError("SELECT", {}, Exception("connection refused"))

    with patch.object(
        CreditDeductionService, "deduct", AsyncMock(side_effect=outage)
    ):
        response = await authorized_client.post(
            "/v1/credits/deduct/subscription", json={"amount": 1}
        )

    assert_error_response(
        response,
        MessageCode.LEDGER_UNAVAILABLE,
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
