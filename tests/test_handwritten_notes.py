"""Handwritten note OCR and the unified my-materials list."""

from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select

from app.db.models import AiMaterial, HandwrittenNote
from app.services.llm_service import LLMServiceError

PNG = ("page.png", b"\x89PNG fake image bytes", "image/png")


async def test_upload_transcribes_and_round_trips(client, user_headers, fake_llm):
    response = await client.post(
        "/handwritten-notes",
        headers=user_headers,
        files={"file": PNG},
        data={"course": "CS101", "topic": "Arrays"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["rawText"] == fake_llm.transcription
    assert body["text"] == "## LECTURE 1\n\n- arrays\n\n1. first item\n\nPlain sentence."
    assert fake_llm.calls[0]["media_type"] == "image/png"

    fetched = await client.get(f"/handwritten-notes/{body['_id']}", headers=user_headers)

    assert fetched.status_code == 200
    note = fetched.json()
    assert note["content"] == body["text"]
    assert note["rawContent"] == body["rawText"]
    assert note["course"] == "CS101"
    assert note["topic"] == "Arrays"
    assert note["title"].startswith("Handwritten Note - ")


async def test_other_users_cannot_read_note(client, user_headers, other_headers):
    created = await client.post("/handwritten-notes", headers=user_headers, files={"file": PNG})

    response = await client.get(f"/handwritten-notes/{created.json()['_id']}", headers=other_headers)

    assert response.status_code == 404
    assert response.json() == {"error": "Note not found"}


async def test_missing_file_is_400(client, user_headers):
    response = await client.post("/handwritten-notes", headers=user_headers, data={"course": "CS101"})

    assert response.status_code == 400
    assert response.json() == {"error": "No file uploaded"}


async def test_transcription_failure_persists_nothing(client, user_headers, fake_llm, database):
    fake_llm.error = LLMServiceError("vision model unavailable")

    response = await client.post("/handwritten-notes", headers=user_headers, files={"file": PNG})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to process image. Make sure it is a clear image."}
    async with database.session() as session:
        count = (await session.execute(select(func.count()).select_from(HandwrittenNote))).scalar_one()
    assert count == 0


async def test_my_materials_merges_newest_first(client, user_headers, db_session):
    now = datetime.now(timezone.utc)
    db_session.add_all(
        [
            AiMaterial(
                title="Sorting notes",
                type="notes",
                category="Theory",
                topic="Sorting",
                content="...",
                uploaded_by="user_alice",
                created_at=now - timedelta(hours=2),
            ),
            HandwrittenNote(
                title="Lecture scribbles",
                content="...",
                course="CS101",
                uploaded_by="user_alice",
                created_at=now - timedelta(hours=1),
            ),
            AiMaterial(
                title="Someone else's",
                type="slides",
                category="Lab",
                topic="Graphs",
                content="...",
                uploaded_by="user_bob",
            ),
        ]
    )
    await db_session.commit()

    response = await client.get("/my-materials", headers=user_headers)

    assert response.status_code == 200
    items = response.json()
    assert [i["title"] for i in items] == ["Lecture scribbles", "Sorting notes"]
    assert items[0]["kind"] == "handwritten"
    assert items[0]["subType"] == "handwritten"
    assert items[0]["metadata"] == {"course": "CS101", "topic": None}
    assert items[1]["kind"] == "ai-note"
    assert items[1]["subType"] == "notes"
    assert items[1]["category"] == "Theory"
    assert items[1]["metadata"] == {"course": "AI Generated", "topic": "Sorting"}
