import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from builders import create_course, learner_headers


@pytest.mark.asyncio
async def test_mark_lesson_complete(client: AsyncClient, db_session: AsyncSession):
    _, _, lessons = await create_course(db_session, {"A": ["A1", "A2"]})
    headers = await learner_headers(client)

    response = await client.post(
        "/progress/lesson", json={"lesson_id": str(lessons["A1"].id)}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["completed"] is True

    # A2 opens once A1 is done
    response = await client.get(f"/course/lessons/{lessons['A2'].id}", headers=headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_mark_lesson_incomplete(client: AsyncClient, db_session: AsyncSession):
    _, _, lessons = await create_course(db_session, {"A": ["A1", "A2"]})
    headers = await learner_headers(client)
    lid = str(lessons["A1"].id)

    await client.post("/progress/lesson", json={"lesson_id": lid}, headers=headers)
    response = await client.post(
        "/progress/lesson", json={"lesson_id": lid, "completed": False}, headers=headers
    )

    assert response.status_code == 200
    assert response.json()["completed"] is False
    assert response.json()["completed_at"] is None
    response = await client.get(f"/course/lessons/{lessons['A2'].id}", headers=headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_mark_lesson_errors(client: AsyncClient, db_session: AsyncSession):
    await create_course(db_session, {"A": ["A1"]})
    headers = await learner_headers(client)

    response = await client.post("/progress/lesson", json={"lesson_id": "nope"}, headers=headers)
    assert response.status_code == 400

    response = await client.post(
        "/progress/lesson", json={"lesson_id": str(uuid.uuid4())}, headers=headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_submit_homework(client: AsyncClient, db_session: AsyncSession):
    _, modules, lessons = await create_course(db_session, {"A": ["A1", "A2"]})
    headers = await learner_headers(client)
    body = {"module_id": str(modules["A"].id), "content": "first draft"}

    response = await client.post("/homework", json=body, headers=headers)
    assert response.status_code == 201
    first = response.json()
    assert first["lesson_id"] == str(lessons["A1"].id)
    assert first["status"] == "SUBMITTED"

    body["content"] = "second draft"
    response = await client.post("/homework", json=body, headers=headers)
    assert response.status_code == 201
    assert response.json()["id"] == first["id"]

    response = await client.get(
        "/homework", params={"module_id": str(modules["A"].id)}, headers=headers
    )
    assert response.status_code == 200
    assert [s["submission_text"] for s in response.json()] == ["second draft"]


@pytest.mark.asyncio
async def test_submit_homework_validation(client: AsyncClient, db_session: AsyncSession):
    _, modules, _ = await create_course(db_session, {"A": ["A1"], "Empty": []})
    headers = await learner_headers(client)

    response = await client.post(
        "/homework", json={"module_id": str(modules["A"].id), "content": "   "}, headers=headers
    )
    assert response.status_code == 400

    response = await client.post(
        "/homework", json={"module_id": "bad", "content": "x"}, headers=headers
    )
    assert response.status_code == 400

    response = await client.post(
        "/homework", json={"module_id": str(modules["Empty"].id), "content": "x"}, headers=headers
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "No lessons found in this module"
