"""Catalog Routes — web submission of problems and tools, listing, search and deletion.

Tests cover:
    - POST /problems/submit resolves in-request, persists once, returns 201
    - Empty description → 400 validation envelope
    - GET /problems filters by status and embeds the matched tool
    - POST /tools/add maps extraction results to 201 / 400 / 409 / 500
    - GET /tools/search and DELETE /tools/{id}
"""

import json
from uuid import uuid4

from toolfinder.core.domain_types import ProblemStatus, PromptFunction
from tests.services.mock_clients import TOOL_FIELDS, tool_fields

RELEVANCE = PromptFunction.VALIDATE_RELEVANCE
EXTRACT = PromptFunction.EXTRACT_TOOL_INFO


# --- Problems -----------------------------------------------------------------

async def test_submit_problem_matches_existing_tool(client, catalog):
    tool = await catalog.insert_tool(tool_fields())

    res = await client.post("/api/v1/problems/submit", json={
        "description": "I need a tool to convert Figma designs to React components",
    })

    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["problem"]["status"] == "solved"
    assert body["problem"]["matched_tool_id"] == str(tool["id"])
    assert body["match"]["status"] == "solved"


async def test_submit_problem_records_opportunity(client, catalog):
    res = await client.post("/api/v1/problems/submit", json={"description": "Teleport my cat"})

    assert res.status_code == 201
    assert res.json()["problem"]["status"] == "opportunity"
    assert len(await catalog.list_problems()) == 1


async def test_submit_blank_problem_is_400(client, catalog):
    res = await client.post("/api/v1/problems/submit", json={"description": "   "})

    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"
    assert await catalog.list_problems() == []


async def test_list_problems_with_status_filter(client, catalog):
    tool = await catalog.insert_tool(tool_fields())
    await catalog.insert_problem("Figma to React", ProblemStatus.SOLVED, tool["id"])
    await catalog.insert_problem("Teleport my cat", ProblemStatus.OPPORTUNITY, None)

    res = await client.get("/api/v1/problems", params={"status": "solved"})

    assert res.status_code == 200
    body = res.json()
    assert body["count"] == 1
    assert body["problems"][0]["tool"]["title"] == "Locofy"


async def test_list_problems_rejects_unknown_status(client):
    res = await client.get("/api/v1/problems", params={"status": "archived"})
    assert res.status_code == 400


# --- Tools --------------------------------------------------------------------

async def test_add_tool_created(client, completion):
    completion.responses[RELEVANCE] = '{"isRelevant": true, "reason": "AI tool"}'
    completion.responses[EXTRACT] = json.dumps(TOOL_FIELDS)

    res = await client.post("/api/v1/tools/add", json={"url": "https://www.locofy.ai/"})

    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["tool"]["title"] == "Locofy"


async def test_add_tool_invalid_url_is_400(client, fetcher):
    res = await client.post("/api/v1/tools/add", json={"url": "not a url"})

    assert res.status_code == 400
    assert res.json()["message"] == "Invalid URL format"
    assert fetcher.calls == []


async def test_add_tool_rejected_is_400_with_reason(client, completion):
    completion.responses[RELEVANCE] = '{"isRelevant": false, "reason": "Online store"}'

    res = await client.post("/api/v1/tools/add", json={"url": "https://shop.example/"})

    assert res.status_code == 400
    assert res.json()["reason"] == "Online store"


async def test_add_duplicate_tool_is_409_with_existing(client, catalog):
    existing = await catalog.insert_tool(tool_fields())

    res = await client.post("/api/v1/tools/add", json={"url": "https://www.locofy.ai/"})

    assert res.status_code == 409
    assert res.json()["tool"]["id"] == str(existing["id"])


async def test_add_tool_extraction_failure_is_500(client, completion):
    completion.responses[RELEVANCE] = '{"isRelevant": true}'
    completion.responses[EXTRACT] = '{"title": "Only a title"}'

    res = await client.post("/api/v1/tools/add", json={"url": "https://www.locofy.ai/"})

    assert res.status_code == 500
    assert res.json()["message"] == "Failed to extract tool information"


async def test_search_tools(client, catalog):
    await catalog.insert_tool(tool_fields())
    await catalog.insert_tool(tool_fields(
        url="https://invoices.example/", title="Invoicer",
        problem_solves="Generate invoices from Stripe payments",
    ))

    everything = await client.get("/api/v1/tools/search")
    figma = await client.get("/api/v1/tools/search", params={"q": "figma designs to react"})

    assert everything.json()["count"] == 2
    assert [t["title"] for t in figma.json()["tools"]] == ["Locofy"]


async def test_delete_tool(client, catalog):
    tool = await catalog.insert_tool(tool_fields())

    res = await client.delete(f"/api/v1/tools/{tool['id']}")

    assert res.status_code == 200
    assert await catalog.get_tool_by_id(tool["id"]) is None


async def test_delete_unknown_tool_is_404(client):
    res = await client.delete(f"/api/v1/tools/{uuid4()}")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "RESOURCE_NOT_FOUND"
