from __future__ import annotations

import json
import os

os.environ["LOGURU_LEVEL"] = "DEBUG"

from collections.abc import AsyncIterator, Sequence
from pathlib import Path
from typing import Any

import httpx
import pytest

from genie_console.agent.events import FileInfo, RunEvent, ToolOutput
from genie_console.config import Config
from genie_console.genie import GenieClient

BASE_ADDRESS = "https://genie.test"
SPACE_ID = "space-1"
AUTH_TOKEN = "token-1"
QUERY_RESULT = '{"statement_response": {"result": {"data_array": [["42"]]}}}'


class FakeGenieServer:
    """Serves the three Genie endpoints from a scripted status sequence."""

    def __init__(
        self,
        statuses: Sequence[str],
        result: str = QUERY_RESULT,
        attachment: dict[str, Any] | None = None,
    ):
        self.statuses = list(statuses)
        self.result = result
        self.attachment = attachment or {
            "attachment_id": "att-1",
            "query": {"query": "SELECT 42", "description": "The answer"},
        }
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/start-conversation"):
            return httpx.Response(200, json={"message_id": "msg-1", "conversation_id": "conv-1"})
        if "/query-result/" in path:
            return httpx.Response(200, text=self.result)

        status = self.statuses.pop(0)
        attachments = [self.attachment] if status == "COMPLETED" else []
        return httpx.Response(200, json={"status": status, "attachments": attachments})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def kinds(self) -> list[str]:
        kinds = []
        for request in self.requests:
            if request.url.path.endswith("/start-conversation"):
                kinds.append("start")
            elif "/query-result/" in request.url.path:
                kinds.append("result")
            else:
                kinds.append("status")
        return kinds


class FakeRuntime:
    """In-memory agent runtime replaying one scripted stream per call."""

    def __init__(
        self,
        streams: Sequence[Sequence[RunEvent]] = (),
        files: dict[str, tuple[str, bytes]] | None = None,
    ):
        self.streams = [list(stream) for stream in streams]
        self.files = files or {}
        self.calls: list[tuple[Any, ...]] = []
        self.submitted: list[list[ToolOutput]] = []
        self.created_agent: dict[str, Any] | None = None

    async def create_agent(self, model, name, instructions, tools, code_interpreter=True) -> str:
        self.created_agent = {
            "model": model,
            "name": name,
            "instructions": instructions,
            "tools": list(tools),
            "code_interpreter": code_interpreter,
        }
        self.calls.append(("create_agent",))
        return "agent-1"

    async def create_thread(self) -> str:
        self.calls.append(("create_thread",))
        return "thread-1"

    async def post_message(self, thread_id: str, content: str) -> str:
        self.calls.append(("post_message", thread_id, content))
        return "message-1"

    async def _replay(self) -> AsyncIterator[RunEvent]:
        for event in self.streams.pop(0):
            yield event

    def stream_run(self, thread_id: str, agent_id: str) -> AsyncIterator[RunEvent]:
        self.calls.append(("stream_run", thread_id, agent_id))
        return self._replay()

    def submit_tool_outputs(
        self, thread_id: str, run_id: str, tool_outputs: Sequence[ToolOutput]
    ) -> AsyncIterator[RunEvent]:
        self.calls.append(("submit_tool_outputs", thread_id, run_id))
        self.submitted.append(list(tool_outputs))
        return self._replay()

    async def get_file(self, file_id: str) -> FileInfo:
        self.calls.append(("get_file", file_id))
        return FileInfo(file_id=file_id, filename=self.files[file_id][0])

    async def get_file_content(self, file_id: str) -> bytes:
        self.calls.append(("get_file_content", file_id))
        return self.files[file_id][1]

    async def delete_agent(self, agent_id: str) -> None:
        self.calls.append(("delete_agent", agent_id))

    async def delete_thread(self, thread_id: str) -> None:
        self.calls.append(("delete_thread", thread_id))


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        space_id=SPACE_ID,
        auth_token=AUTH_TOKEN,
        base_address=BASE_ADDRESS,
        polling_delay_milliseconds=0,
        agent_model_name="gpt-4o",
        image_dir=tmp_path.as_posix(),
    )


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    config_path = tmp_path / "settings.json"
    config_path.write_text(
        json.dumps({
            "space_id": SPACE_ID,
            "auth_token": AUTH_TOKEN,
            "base_address": BASE_ADDRESS,
            "polling_delay_milliseconds": 0,
            "agent_model_name": "gpt-4o",
            "agent_api_key": "sk-test",
            "image_dir": tmp_path.as_posix(),
        })
    )
    return config_path


@pytest.fixture
def genie_server():
    return FakeGenieServer


@pytest.fixture
def fake_runtime():
    return FakeRuntime


@pytest.fixture
def genie_client_builder():
    def build(server: FakeGenieServer) -> GenieClient:
        return GenieClient(BASE_ADDRESS, SPACE_ID, AUTH_TOKEN, transport=server.transport)

    return build
