import pytest
from httpx import AsyncClient

from builders import learner_headers


@pytest.mark.asyncio
async def test_profile_requires_session(client: AsyncClient):
    response = await client.put("/profile", json={"full_name": "Anon"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_rename_profile(client: AsyncClient):
    headers = await learner_headers(client, full_name="Before")

    response = await client.put("/profile", json={"full_name": "After"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["full_name"] == "After"

    profile = await client.get("/profile", headers=headers)
    assert profile.json()["full_name"] == "After"
    assert profile.json()["role"] == "student"


@pytest.mark.asyncio
async def test_blank_name_rejected(client: AsyncClient):
    headers = await learner_headers(client, full_name="Before")

    response = await client.put("/profile", json={"full_name": "  "}, headers=headers)
    assert response.status_code == 400

    profile = await client.get("/profile", headers=headers)
    assert profile.json()["full_name"] == "Before"
