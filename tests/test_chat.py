"""Study assistant chat, history and evaluation."""

from uuid import UUID, uuid4

import pytest
from sqlalchemy import func, select

from app.db.models import ChatHistory, ChatMessage, Material
from app.services.chat_service import NO_MATERIALS_FOUND
from app.services.llm_service import LLMServiceError, SafetyBlockedError


@pytest.fixture
async def materials(db_session):
    rows = [
        Material(
            title="Merge Sort",
            category="theory",
            type="pdf",
            course="CS101",
            topic="Sorting",
            week=4,
            content="Merge sort splits the array and merges sorted halves.",
            uploaded_by="admin-user",
        ),
        Material(
            title="Sorting Lab",
            category="lab",
            type="code",
            course="CS101",
            topic="Sorting",
            week=3,
            content="Implement insertion sort.",
            uploaded_by="admin-user",
        ),
        Material(
            title="Arrays",
            category="theory",
            type="pdf",
            course="CS101",
            topic="Data Structures",
            week=1,
            content="Arrays are contiguous.",
            uploaded_by="admin-user",
        ),
    ]
    db_session.add_all(rows)
    await db_session.commit()
    return rows


async def _message_count(database) -> int:
    async with database.session() as session:
        return (await session.execute(select(func.count()).select_from(ChatMessage))).scalar_one()


# =============================================================================
# CHAT TURN
# =============================================================================


async def test_message_is_required(client, user_headers):
    response = await client.post("/chat", headers=user_headers, json={"message": ""})

    assert response.status_code == 400
    assert response.json() == {"error": "Message is required"}


async def test_search_lists_matching_materials(client, user_headers, fake_llm, materials):
    response = await client.post("/chat", headers=user_headers, json={"message": "find sorting slides"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["intent"] == "search"
    assert body["response"] == "Found 2 relevant materials: Sorting Lab, Merge Sort"
    assert [f["title"] for f in body["relevantFiles"]] == ["Sorting Lab", "Merge Sort"]
    assert body["relevantFiles"][0]["fileUrl"] == ""
    assert fake_llm.calls == []


async def test_search_without_matches(client, user_headers, materials):
    response = await client.post("/chat", headers=user_headers, json={"message": "find quantum pdfs"})

    body = response.json()
    assert body["response"] == NO_MATERIALS_FOUND
    assert "relevantFiles" not in body


async def test_explain_is_grounded_in_materials(client, user_headers, fake_llm, materials):
    response = await client.post("/chat", headers=user_headers, json={"message": "Explain merge sort"})

    body = response.json()
    assert body["intent"] == "explain"
    assert body["response"] == "Fake answer"
    system = fake_llm.calls[0]["system"]
    assert "# Material: Merge Sort (Week 4, Sorting)" in system
    assert "Student's current question: Explain merge sort" in fake_llm.calls[0]["messages"][0]["content"]


async def test_chitchat_goes_straight_to_model(client, user_headers, fake_llm):
    fake_llm.default_reply = "Hello! Ready to study?"

    response = await client.post("/chat", headers=user_headers, json={"message": "hello there"})

    body = response.json()
    assert body["intent"] == "chitchat"
    assert body["response"] == "Hello! Ready to study?"
    assert fake_llm.calls[0]["system"] is None


async def test_new_chat_title_is_truncated(client, user_headers, database):
    message = "Explain " + "very " * 20 + "long question"

    response = await client.post("/chat", headers=user_headers, json={"message": message})

    async with database.session() as session:
        chat = await session.get(ChatHistory, UUID(response.json()["chatId"]))
    assert chat.title == message[:50] + "..."
    assert await _message_count(database) == 2


async def test_follow_up_appends_and_replays_history(client, user_headers, fake_llm, database):
    first = await client.post("/chat", headers=user_headers, json={"message": "What is recursion?"})
    chat_id = first.json()["chatId"]

    second = await client.post(
        "/chat", headers=user_headers, json={"message": "Why does it need a base case?", "chatId": chat_id}
    )

    assert second.json()["chatId"] == chat_id
    assert await _message_count(database) == 4
    prompt = fake_llm.calls[1]["messages"][0]["content"]
    assert "Student: What is recursion?" in prompt
    assert "Assistant: Fake answer" in prompt


async def test_foreign_chat_id_starts_new_chat(client, user_headers, other_headers):
    first = await client.post("/chat", headers=user_headers, json={"message": "What is a heap?"})

    response = await client.post(
        "/chat", headers=other_headers, json={"message": "What is a stack?", "chatId": first.json()["chatId"]}
    )

    assert response.json()["chatId"] != first.json()["chatId"]


async def test_safety_refusal_is_400_and_nothing_stored(client, user_headers, fake_llm, database):
    fake_llm.error = SafetyBlockedError("SAFETY: response blocked by the model")

    response = await client.post("/chat", headers=user_headers, json={"message": "Explain exploits"})

    assert response.status_code == 400
    assert response.json() == {"error": "Response blocked by safety filters."}
    assert await _message_count(database) == 0


# =============================================================================
# HISTORY
# =============================================================================


async def test_list_and_get_own_chats(client, user_headers, other_headers):
    created = await client.post("/chat", headers=user_headers, json={"message": "What is a queue?"})
    chat_id = created.json()["chatId"]

    listed = await client.get("/chat", headers=user_headers)
    detail = await client.get("/chat", headers=user_headers, params={"chatId": chat_id})
    foreign = await client.get("/chat", headers=other_headers, params={"chatId": chat_id})
    others = await client.get("/chat", headers=other_headers)

    assert [c["_id"] for c in listed.json()["chats"]] == [chat_id]
    assert listed.json()["chats"][0]["title"] == "What is a queue?"
    chat = detail.json()["chat"]
    assert chat["userId"] == "user_alice"
    assert sorted(m["role"] for m in chat["messages"]) == ["assistant", "user"]
    assert foreign.status_code == 404
    assert foreign.json() == {"error": "Chat not found"}
    assert others.json() == {"chats": []}


async def test_delete_requires_chat_id(client, user_headers):
    response = await client.delete("/chat", headers=user_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Chat ID required"}


async def test_delete_removes_chat_and_messages(client, user_headers, database):
    created = await client.post("/chat", headers=user_headers, json={"message": "What is a graph?"})
    chat_id = created.json()["chatId"]

    response = await client.delete("/chat", headers=user_headers, params={"chatId": chat_id})

    assert response.json() == {"success": True}
    assert await _message_count(database) == 0
    listed = await client.get("/chat", headers=user_headers)
    assert listed.json() == {"chats": []}


async def test_delete_foreign_or_unknown_chat_is_a_no_op(client, user_headers, other_headers, database):
    created = await client.post("/chat", headers=user_headers, json={"message": "What is a tree?"})

    foreign = await client.delete("/chat", headers=other_headers, params={"chatId": created.json()["chatId"]})
    unknown = await client.delete("/chat", headers=user_headers, params={"chatId": str(uuid4())})

    assert foreign.json() == {"success": True}
    assert unknown.json() == {"success": True}
    assert await _message_count(database) == 2


# =============================================================================
# EVALUATION
# =============================================================================


async def test_evaluate_requires_both_fields(client, user_headers):
    response = await client.post("/chat/evaluate", headers=user_headers, json={"userMessage": "q"})

    assert response.status_code == 400
    assert response.json() == {"error": "userMessage and assistantContent are required"}


async def test_evaluate_combines_rubric_and_self_evaluation(client, user_headers, fake_llm):
    fake_llm.replies = [
        "ACCURACY: 90\nCOMPLETENESS: 80\nCLARITY: 100\nRELEVANCE: 80",
        "SCORE: 9\nCONFIDENCE: High\nISSUES: none\nSUGGESTION: Add an example",
    ]

    response = await client.post(
        "/chat/evaluate",
        headers=user_headers,
        json={"userMessage": "What is a stack?", "assistantContent": "A LIFO structure."},
    )

    assert response.status_code == 200
    validation = response.json()["validation"]
    assert validation["overallScore"] == 93
    assert validation["status"] == "verified"
    assert validation["checks"]["rubric"]["totalScore"] == 87
    assert validation["checks"]["grounding"] == {
        "score": 100,
        "grounded": True,
        "reason": "No factual claims to verify",
    }
    assert validation["checks"]["selfEval"]["confidence"] == "high"
    assert validation["checks"]["code"] == {"hasCode": False, "valid": True, "errors": []}


async def test_evaluate_scores_grounding_against_materials(client, user_headers, fake_llm, materials):
    fake_llm.replies = [
        "ACCURACY: 90\nCOMPLETENESS: 80\nCLARITY: 100\nRELEVANCE: 80",
        "SCORE: 9\nCONFIDENCE: medium\nISSUES: none\nSUGGESTION: none",
    ]
    answer = (
        "Merge sort is a stable divide and conquer algorithm. "
        "Photosynthesis is how plants make sugar from light!"
    )

    response = await client.post(
        "/chat/evaluate",
        headers=user_headers,
        json={"userMessage": "What is merge sort?", "assistantContent": answer},
    )

    assert response.status_code == 200
    validation = response.json()["validation"]
    grounding = validation["checks"]["grounding"]
    assert grounding["score"] == 50
    assert grounding["grounded"] is True
    assert grounding["totalStatements"] == 2
    assert grounding["groundedStatements"] == 1
    assert [d["grounded"] for d in grounding["details"]] == [True, False]
    assert "source" not in grounding["details"][1]
    # grounding 50 * 35, rubric 87 * 30, self-eval 90 * 20 over 85
    assert validation["overallScore"] == 72
    assert validation["status"] == "acceptable"


async def test_evaluate_failure_is_500(client, user_headers, fake_llm):
    fake_llm.error = LLMServiceError("model unavailable")

    response = await client.post(
        "/chat/evaluate",
        headers=user_headers,
        json={"userMessage": "What is a stack?", "assistantContent": "A LIFO structure."},
    )

    assert response.status_code == 500
    assert response.json() == {"error": "model unavailable"}
