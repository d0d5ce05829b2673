import pytest

from canvasnotes.client.api import (
    CREATE_BLOCK_MUTATION,
    CREATE_CANVAS_MUTATION,
    CREATE_CONNECTION_MUTATION,
    DELETE_CONNECTION_MUTATION,
    GET_CANVAS_BY_ID_QUERY,
    GET_MY_CANVASES_QUERY,
    UNDO_BLOCK_CREATION_MUTATION,
    UPDATE_BLOCK_CONTENT_MUTATION,
    UPDATE_BLOCK_NOTES_MUTATION,
    UPDATE_BLOCK_POSITION_MUTATION,
    UPDATE_CANVAS_TITLE_MUTATION,
    CanvasApi,
    CanvasApiError,
)
from canvasnotes.core.auth import create_access_token

from conftest import ALICE, BOB, TEST_JWT_SECRET, auth_headers


async def gql(client, query, variables=None, user=ALICE, headers=None):
    if headers is None:
        headers = auth_headers(user) if user else {}
    response = await client.post("/graphql", json={"query": query, "variables": variables or {}}, headers=headers)
    assert response.status_code == 200
    return response.json()


def error_code(body):
    return body["errors"][0]["extensions"]["code"]


async def create_canvas(client, title=None, user=ALICE):
    body = await gql(client, CREATE_CANVAS_MUTATION, {"title": title}, user=user)
    return body["data"]["createCanvas"]


async def create_block(client, canvas_id, x=0, y=0, content=None, block_type="text", user=ALICE):
    body = await gql(
        client,
        CREATE_BLOCK_MUTATION,
        {"canvasId": canvas_id, "type": block_type, "position": {"x": x, "y": y}, "content": content},
        user=user,
    )
    return body["data"]["createBlock"]


@pytest.mark.asyncio
async def test_health_and_hello(http_client):
    response = await http_client.get("/health")
    assert response.json()["status"] == "healthy"

    body = await gql(http_client, "{ hello }", user=None)
    assert body["data"]["hello"]


@pytest.mark.asyncio
async def test_missing_token_is_unauthenticated(http_client):
    body = await gql(http_client, GET_MY_CANVASES_QUERY, user=None)

    assert error_code(body) == "UNAUTHENTICATED"
    assert body["errors"][0]["message"] == "User is not authenticated"


@pytest.mark.asyncio
async def test_invalid_token_is_unauthenticated(http_client):
    body = await gql(http_client, GET_MY_CANVASES_QUERY, headers={"Authorization": "Bearer not-a-jwt"})

    assert error_code(body) == "UNAUTHENTICATED"


@pytest.mark.asyncio
async def test_create_canvas_scenarios(http_client):
    untitled = await create_canvas(http_client)
    titled = await create_canvas(http_client, "  My Plan  ")

    assert untitled["title"] == "Untitled Canvas"
    assert untitled["isPublic"] is False
    assert titled["title"] == "My Plan"

    body = await gql(http_client, GET_MY_CANVASES_QUERY)
    listed = body["data"]["myCanvases"]
    assert [c["id"] for c in listed] == [untitled["id"], titled["id"]]
    assert all(c["blockCount"] == 0 for c in listed)


@pytest.mark.asyncio
async def test_update_canvas_title(http_client):
    canvas = await create_canvas(http_client, "Before")

    body = await gql(http_client, UPDATE_CANVAS_TITLE_MUTATION, {"id": canvas["id"], "title": "  After "})
    assert body["data"]["updateCanvasTitle"]["title"] == "After"

    body = await gql(http_client, UPDATE_CANVAS_TITLE_MUTATION, {"id": canvas["id"], "title": "   "})
    assert error_code(body) == "BAD_USER_INPUT"
    assert body["errors"][0]["extensions"]["argumentName"] == "title"

    body = await gql(http_client, UPDATE_CANVAS_TITLE_MUTATION, {"id": canvas["id"], "title": "Mine"}, user=BOB)
    assert error_code(body) == "NOT_FOUND_OR_FORBIDDEN"


@pytest.mark.asyncio
async def test_canvas_query_returns_nested_graph(http_client):
    canvas = await create_canvas(http_client, "Graph")
    first = await create_block(http_client, canvas["id"], 10, 20)
    second = await create_block(http_client, canvas["id"], 300, 20, {"url": "https://example.com"}, "link")
    body = await gql(
        http_client,
        CREATE_CONNECTION_MUTATION,
        {"canvasId": canvas["id"], "sourceBlockId": first["id"], "targetBlockId": second["id"], "sourceHandle": "r"},
    )
    connection = body["data"]["createConnection"]

    body = await gql(http_client, GET_CANVAS_BY_ID_QUERY, {"id": canvas["id"]})
    data = body["data"]["canvas"]

    assert first["content"] == {}
    assert first["size"] == {"width": 200.0, "height": 100.0}
    assert first["position"] == {"x": 10.0, "y": 20.0}
    assert [b["id"] for b in data["blocks"]] == [first["id"], second["id"]]
    assert data["connections"] == [connection]
    assert connection["sourceHandle"] == "r"
    assert connection["targetHandle"] is None


@pytest.mark.asyncio
async def test_private_canvas_is_not_found_for_others(http_client):
    canvas = await create_canvas(http_client, "Secret")

    body = await gql(http_client, GET_CANVAS_BY_ID_QUERY, {"id": canvas["id"]}, user=BOB)

    assert body["data"]["canvas"] is None
    assert error_code(body) == "NOT_FOUND"
    assert body["errors"][0]["extensions"]["canvasId"] == canvas["id"]


@pytest.mark.asyncio
async def test_create_block_validation(http_client):
    canvas = await create_canvas(http_client)

    body = await gql(
        http_client,
        CREATE_BLOCK_MUTATION,
        {"canvasId": canvas["id"], "type": "text", "position": {"x": "ten", "y": 0}},
    )
    assert error_code(body) == "BAD_USER_INPUT"

    body = await gql(
        http_client,
        CREATE_BLOCK_MUTATION,
        {"canvasId": canvas["id"], "type": "text", "position": {"x": 1, "y": 2}},
        user=BOB,
    )
    assert error_code(body) == "NOT_FOUND_OR_FORBIDDEN"


@pytest.mark.asyncio
async def test_block_updates(http_client):
    canvas = await create_canvas(http_client)
    block = await create_block(http_client, canvas["id"], content={"text": "hello"})

    body = await gql(http_client, UPDATE_BLOCK_POSITION_MUTATION, {"blockId": block["id"], "position": {"x": 7, "y": 8}})
    assert body["data"]["updateBlockPosition"]["position"] == {"x": 7.0, "y": 8.0}

    body = await gql(http_client, UPDATE_BLOCK_CONTENT_MUTATION, {"blockId": block["id"], "content": {"text": "bye"}})
    assert body["data"]["updateBlockContent"]["content"] == {"text": "bye"}

    body = await gql(http_client, UPDATE_BLOCK_NOTES_MUTATION, {"blockId": block["id"], "notes": "note"})
    assert body["data"]["updateBlockNotes"]["notes"] == "note"

    body = await gql(http_client, UPDATE_BLOCK_NOTES_MUTATION, {"blockId": block["id"], "notes": "x"}, user=BOB)
    assert error_code(body) == "NOT_FOUND_OR_FORBIDDEN"
    assert body["errors"][0]["extensions"]["blockId"] == block["id"]


@pytest.mark.asyncio
async def test_null_content_is_bad_user_input(http_client):
    canvas = await create_canvas(http_client)
    block = await create_block(http_client, canvas["id"], content={"text": "keep"})

    body = await gql(
        http_client,
        "mutation ($id: ID!) { updateBlockContent(blockId: $id, content: null) { id } }",
        {"id": block["id"]},
    )
    assert error_code(body) == "BAD_USER_INPUT"

    body = await gql(http_client, GET_CANVAS_BY_ID_QUERY, {"id": canvas["id"]})
    assert body["data"]["canvas"]["blocks"][0]["content"] == {"text": "keep"}


@pytest.mark.asyncio
async def test_undo_is_disabled_by_default(http_client):
    canvas = await create_canvas(http_client)
    block = await create_block(http_client, canvas["id"])

    body = await gql(http_client, UNDO_BLOCK_CREATION_MUTATION, {"blockId": block["id"]})

    assert body["data"]["undoBlockCreation"] is False


@pytest.mark.asyncio
async def test_connection_lifecycle(http_client):
    canvas = await create_canvas(http_client)
    first = await create_block(http_client, canvas["id"])
    second = await create_block(http_client, canvas["id"], 100)

    body = await gql(
        http_client,
        CREATE_CONNECTION_MUTATION,
        {"canvasId": canvas["id"], "sourceBlockId": first["id"], "targetBlockId": "missing"},
    )
    assert error_code(body) == "BAD_USER_INPUT"
    assert body["errors"][0]["message"] == "Failed to create connection: Source or target block not found."

    body = await gql(
        http_client,
        CREATE_CONNECTION_MUTATION,
        {"canvasId": canvas["id"], "sourceBlockId": first["id"], "targetBlockId": second["id"]},
    )
    connection_id = body["data"]["createConnection"]["id"]

    body = await gql(http_client, DELETE_CONNECTION_MUTATION, {"connectionId": connection_id})
    assert body["data"]["deleteConnection"] is True

    body = await gql(http_client, DELETE_CONNECTION_MUTATION, {"connectionId": connection_id})
    assert error_code(body) == "NOT_FOUND_OR_FORBIDDEN"

    body = await gql(http_client, GET_CANVAS_BY_ID_QUERY, {"id": canvas["id"]})
    assert body["data"]["canvas"]["connections"] == []


@pytest.mark.asyncio
async def test_canvas_api_client_round_trip(http_client):
    token = create_access_token(ALICE, TEST_JWT_SECRET)
    api = CanvasApi(endpoint="http://test/graphql", access_token=token, client=http_client)

    canvas = await api.create_canvas("Client")
    block = await api.create_block(canvas["id"], "text", {"x": 1, "y": 2}, {"text": "t"})
    loaded = await api.get_canvas(canvas["id"])
    listed = await api.get_my_canvases()

    assert loaded["blocks"][0]["id"] == block["id"]
    assert listed[0]["blockCount"] == 1

    with pytest.raises(CanvasApiError) as exc:
        await api.update_canvas_title(canvas["id"], " ")
    assert exc.value.code == "BAD_USER_INPUT"

    await api.close()
    assert not http_client.is_closed
