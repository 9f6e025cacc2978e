import json

import httpx
import pytest

from genie_console.config import Config
from genie_console.exceptions import ConfigurationError, GenieConsoleError, ParseError, ProtocolError
from genie_console.genie import GenieClient, MessageStatus, StartedConversation

BASE_ADDRESS = "https://genie.test"
SPACE_PATH = "/api/2.0/genie/spaces/space-1"


def make_client(handler) -> GenieClient:
    return GenieClient(BASE_ADDRESS, "space-1", "token-1", transport=httpx.MockTransport(handler))


async def test_start_conversation():
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"message_id": "m-42", "conversation_id": "c-7", "extra": 1})

    async with make_client(handler) as client:
        started = await client.start_conversation("How many orders?")

    assert started == StartedConversation(message_id="m-42", conversation_id="c-7")
    request = requests[0]
    assert request.method == "POST"
    assert request.url == f"{BASE_ADDRESS}{SPACE_PATH}/start-conversation"
    assert request.headers["Authorization"] == "Bearer token-1"
    assert json.loads(request.content) == {"content": "How many orders?"}


@pytest.mark.parametrize(
    "body",
    [
        {"message_id": "m-42"},
        {"conversation_id": "c-7"},
        {"message_id": None, "conversation_id": "c-7"},
    ],
)
async def test_start_conversation_requires_both_ids(body):
    async with make_client(lambda request: httpx.Response(200, json=body)) as client:
        with pytest.raises(ParseError):
            await client.start_conversation("hi")


async def test_start_conversation_rejects_non_json():
    async with make_client(lambda request: httpx.Response(200, text="<html>")) as client:
        with pytest.raises(ParseError):
            await client.start_conversation("hi")


@pytest.mark.parametrize(
    "status_code, body",
    [
        (200, {"message_id": "m-42"}),
        (502, {"error": "bad gateway"}),
    ],
)
async def test_start_conversation_failures_share_base_error(status_code, body):
    async with make_client(lambda request: httpx.Response(status_code, json=body)) as client:
        with pytest.raises(GenieConsoleError):
            await client.start_conversation("hi")


async def test_start_conversation_http_error():
    async with make_client(lambda request: httpx.Response(403, text="forbidden")) as client:
        with pytest.raises(ProtocolError) as exc_info:
            await client.start_conversation("hi")

    assert exc_info.value.status_code == 403
    assert exc_info.value.url.endswith("/start-conversation")
    assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)


@pytest.mark.parametrize(
    "body, expected",
    [
        ({"status": "EXECUTING_QUERY"}, MessageStatus(status="EXECUTING_QUERY")),
        ({"status": "EXECUTING_QUERY", "attachments": []}, MessageStatus(status="EXECUTING_QUERY")),
        ({"status": "EXECUTING_QUERY", "attachments": None}, MessageStatus(status="EXECUTING_QUERY")),
        (
            {"status": "COMPLETED", "attachments": [{"attachment_id": "a-1", "text": {"content": "Hi"}}]},
            MessageStatus(status="COMPLETED", attachment_id="a-1"),
        ),
        (
            {
                "status": "COMPLETED",
                "attachments": [
                    {"attachment_id": "a-1", "query": {"query": "SELECT 1", "description": "One"}},
                    {"attachment_id": "a-2", "query": {"query": "SELECT 2", "description": "Two"}},
                ],
            },
            MessageStatus(status="COMPLETED", attachment_id="a-1", query="SELECT 1", description="One"),
        ),
    ],
)
async def test_get_message_status(body, expected):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=body)

    async with make_client(handler) as client:
        status = await client.get_message_status("c-7", "m-42")

    assert status == expected
    assert requests[0].method == "GET"
    assert requests[0].url.path == f"{SPACE_PATH}/conversations/c-7/messages/m-42"


async def test_get_message_status_empty_attachments_tuple():
    body = {"status": "COMPLETED", "attachments": []}
    async with make_client(lambda request: httpx.Response(200, json=body)) as client:
        status = await client.get_message_status("c-7", "m-42")

    assert (status.status, status.attachment_id, status.query, status.description) == ("COMPLETED", "", "", "")
    assert status.is_completed


async def test_get_message_status_http_error():
    async with make_client(lambda request: httpx.Response(500, text="boom")) as client:
        with pytest.raises(ProtocolError) as exc_info:
            await client.get_message_status("c-7", "m-42")

    assert exc_info.value.status_code == 500
    assert exc_info.value.body == "boom"


async def test_retrieve_query_result_is_verbatim():
    raw = '{"statement_response": {"manifest": {}, "result": {"data_array": [["1", null]]}}}\n'
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, text=raw)

    async with make_client(handler) as client:
        result = await client.retrieve_query_result("c-7", "m-42", "a-1")

    assert result == raw
    assert requests[0].url.path == f"{SPACE_PATH}/conversations/c-7/messages/m-42/query-result/a-1"


async def test_retrieve_query_result_http_error():
    async with make_client(lambda request: httpx.Response(404)) as client:
        with pytest.raises(ProtocolError):
            await client.retrieve_query_result("c-7", "m-42", "a-1")


def test_from_config_requires_connection_settings():
    with pytest.raises(ConfigurationError) as exc_info:
        GenieClient.from_config(Config(space_id="space-1", auth_token=None, base_address=None))

    assert exc_info.value.missing == ["auth_token", "base_address"]


async def test_from_config(config: Config):
    client = GenieClient.from_config(config)

    assert client.space_id == "space-1"
    assert client.client.base_url.host == "genie.test"
    assert client.client.headers["Authorization"] == "Bearer token-1"
    await client.close()
