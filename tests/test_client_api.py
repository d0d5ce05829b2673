import httpx
import pytest

from canvasnotes.client.api import CanvasApi, CanvasApiError


def api_returning(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CanvasApi(endpoint="http://test/graphql", access_token="token", client=client)


@pytest.mark.asyncio
async def test_graphql_error_carries_code():
    api = api_returning(lambda request: httpx.Response(
        200, json={"data": None, "errors": [{"message": "Nope", "extensions": {"code": "NOT_FOUND"}}]}
    ))

    with pytest.raises(CanvasApiError) as exc:
        await api.get_canvas("c1")

    assert exc.value.message == "Nope"
    assert exc.value.code == "NOT_FOUND"


@pytest.mark.asyncio
async def test_non_json_body_is_api_error():
    api = api_returning(lambda request: httpx.Response(200, text="<html>gateway</html>"))

    with pytest.raises(CanvasApiError) as exc:
        await api.create_block("c1", "text", {"x": 0, "y": 0})

    assert exc.value.message == "Invalid response from server"
    assert exc.value.code is None


@pytest.mark.asyncio
async def test_non_object_body_is_api_error():
    api = api_returning(lambda request: httpx.Response(200, json=["unexpected"]))

    with pytest.raises(CanvasApiError):
        await api.get_my_canvases()


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"data": None}, {"data": {}}, {"data": {"createBlock": None}}])
async def test_missing_result_is_api_error(body):
    api = api_returning(lambda request: httpx.Response(200, json=body))

    with pytest.raises(CanvasApiError) as exc:
        await api.create_block("c1", "text", {"x": 0, "y": 0})

    assert exc.value.message == "Missing createBlock in response"


@pytest.mark.asyncio
async def test_missing_canvas_is_none():
    api = api_returning(lambda request: httpx.Response(200, json={"data": {"canvas": None}}))

    assert await api.get_canvas("c1") is None


@pytest.mark.asyncio
async def test_http_error_is_api_error():
    api = api_returning(lambda request: httpx.Response(502, text="bad gateway"))

    with pytest.raises(CanvasApiError) as exc:
        await api.delete_connection("e1")

    assert exc.value.message.startswith("Request failed")


@pytest.mark.asyncio
async def test_request_sends_bearer_and_variables():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"data": {"deleteConnection": True}})

    api = api_returning(handler)

    assert await api.delete_connection("e1") is True
    assert seen[0].headers["Authorization"] == "Bearer token"
    assert b'"connectionId":"e1"' in seen[0].content.replace(b" ", b"")
