"""Health check endpoints tests."""

import pytest
from httpx import AsyncClient
from fastapi import status


@pytest.mark.asyncio
async def test_liveness(app, public_client: AsyncClient):
    response = await public_client.get("/health/liveness")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "alive", "service": "credit-ledger-api"}


@pytest.mark.asyncio
async def test_health_check_reports_database(app, public_client: AsyncClient):
    response = await public_client.get("/health/")

    assert response.status_code == status.HTTP_200_OK

    data = response.json()
    assert data["status"] == "healthy"
    assert data["services"]["database"]["connected"] is True
    assert data["services"]["database"]["details"] == {"test_query_result": 1}
