"""End to end: a learner walks the seeded course from first lesson to certificate."""

import re

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from builders import learner_headers
from courseflow.services.course_seed import seed_course


def _lessons(outline: dict) -> list[dict]:
    return [lesson for module in outline["modules"] for lesson in module["lessons"]]


@pytest.mark.asyncio
async def test_full_course_to_certificate(client: AsyncClient, db_session: AsyncSession):
    await seed_course(db_session)
    headers = await learner_headers(client, full_name="Learner One")

    outline = (await client.get("/course", headers=headers)).json()
    assert [l["unlocked"] for l in _lessons(outline)] == [True, False, False, False, False]

    for module in outline["modules"]:
        for lesson in module["lessons"]:
            opened = await client.get(f"/course/lessons/{lesson['id']}", headers=headers)
            assert opened.status_code == 200, lesson["title"]
            done = await client.post(
                "/progress/lesson", json={"lesson_id": lesson["id"]}, headers=headers
            )
            assert done.status_code == 200

        # Certificate is refused until every module has homework
        early = await client.post("/certificate", headers=headers)
        assert early.json()["certificate"] is None

        submitted = await client.post(
            "/homework",
            json={"module_id": module["id"], "content": f"Homework for {module['title']}"},
            headers=headers,
        )
        assert submitted.status_code == 201

    outline = (await client.get("/course", headers=headers)).json()
    assert outline["completed_lessons"] == outline["total_lessons"] == 5
    assert all(m["homework_submitted"] for m in outline["modules"])

    eligibility = (await client.get("/certificate/eligibility", headers=headers)).json()
    assert eligibility["eligible"] is True

    issued = (await client.post("/certificate", headers=headers)).json()
    number = issued["certificate"]["certificate_number"]
    assert re.fullmatch(r"COURSE-\d{6}-[0-9A-F]{4}", number)
    assert issued["course_title"] == "Foundations of Personal Productivity"
    assert issued["completion_message"].startswith("Congratulations")

    verified = (await client.get(f"/certificates/{number}")).json()
    assert verified["recipient_name"] == "Learner One"


@pytest.mark.asyncio
async def test_homework_gates_next_module(client: AsyncClient, db_session: AsyncSession):
    await seed_course(db_session)
    headers = await learner_headers(client)
    outline = (await client.get("/course", headers=headers)).json()
    planning, focus = outline["modules"][0], outline["modules"][1]

    for lesson in planning["lessons"]:
        await client.post("/progress/lesson", json={"lesson_id": lesson["id"]}, headers=headers)

    first_focus = focus["lessons"][0]["id"]
    assert (await client.get(f"/course/lessons/{first_focus}", headers=headers)).status_code == 403

    await client.post(
        "/homework", json={"module_id": planning["id"], "content": "goals"}, headers=headers
    )
    assert (await client.get(f"/course/lessons/{first_focus}", headers=headers)).status_code == 200
