"""Material search and retrieval-augmented answers."""

import pytest

from app.db.models import Material
from app.services.chat_service import NO_CONTEXT_FOUND
from app.services.llm_service import LLMServiceError, SafetyBlockedError


@pytest.fixture
async def materials(db_session):
    rows = [
        Material(
            title="Graph Traversal",
            category="theory",
            type="pdf",
            course="CS201",
            topic="Graphs",
            week=5,
            content="BFS visits neighbours level by level. " * 20,
            uploaded_by="admin-user",
        ),
        Material(
            title="Graph Lab",
            category="lab",
            type="code",
            course="CS201",
            topic="Graphs",
            week=6,
            content="Implement DFS with an explicit stack.",
            uploaded_by="admin-user",
        ),
        Material(
            title="Empty Graph Slides",
            category="theory",
            type="slides",
            course="CS201",
            topic="Graphs",
            week=7,
            content="",
            uploaded_by="admin-user",
        ),
    ]
    db_session.add_all(rows)
    await db_session.commit()
    return rows


async def test_query_is_required(client, user_headers):
    response = await client.post("/search", headers=user_headers, json={"mode": "rag"})

    assert response.status_code == 400
    assert response.json() == {"error": "Query is required"}


async def test_search_mode_lists_matches_with_excerpts(client, user_headers, fake_llm, materials):
    response = await client.post("/search", headers=user_headers, json={"query": "graph"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert [r["material"]["title"] for r in body["results"]] == [
        "Graph Traversal",
        "Graph Lab",
        "Empty Graph Slides",
    ]
    first = body["results"][0]
    assert first["id"] == str(materials[0].id)
    assert len(first["content"]) == 500
    assert first["material"]["fileUrl"] == ""
    assert fake_llm.calls == []


async def test_search_mode_filters_by_category(client, user_headers, materials):
    response = await client.post(
        "/search", headers=user_headers, json={"query": "graph", "category": "lab"}
    )

    assert [r["material"]["title"] for r in response.json()["results"]] == ["Graph Lab"]


async def test_rag_mode_answers_from_material_text(client, user_headers, fake_llm, materials):
    fake_llm.default_reply = "BFS uses a queue."

    response = await client.post(
        "/search", headers=user_headers, json={"query": "graph traversal order", "mode": "rag"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["response"] == "BFS uses a queue."
    assert [s["title"] for s in body["sources"]] == ["Graph Traversal", "Graph Lab"]
    call = fake_llm.calls[0]
    assert call["messages"] == [{"role": "user", "content": "graph traversal order"}]
    assert "# Material: Graph Lab (Week 6, Graphs)" in call["system"]


async def test_rag_mode_without_matches_skips_the_model(client, user_headers, fake_llm, materials):
    response = await client.post(
        "/search", headers=user_headers, json={"query": "photosynthesis", "mode": "rag"}
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "response": NO_CONTEXT_FOUND, "sources": []}
    assert fake_llm.calls == []


@pytest.mark.parametrize(
    "error,status_code,message",
    [
        (SafetyBlockedError("SAFETY"), 400, "Response blocked by safety filters."),
        (LLMServiceError("overloaded"), 500, "Search failed"),
    ],
)
async def test_rag_mode_maps_model_failures(client, user_headers, fake_llm, materials, error, status_code, message):
    fake_llm.error = error

    response = await client.post("/search", headers=user_headers, json={"query": "graph", "mode": "rag"})

    assert response.status_code == status_code
    assert response.json() == {"error": message}


async def test_unknown_mode_is_400(client, user_headers):
    response = await client.post("/search", headers=user_headers, json={"query": "graph", "mode": "vector"})

    assert response.status_code == 400
    assert response.json()["error"].startswith("mode")
