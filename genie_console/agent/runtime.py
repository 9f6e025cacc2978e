"""Hosted agent runtime used by the agent session.

The session only talks to the :class:`AgentRuntime` protocol.
:class:`OpenAIAgentRuntime` implements it over the OpenAI Assistants API,
which is also served by Azure OpenAI.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable, Sequence
from typing import Any, Protocol

from openai import AsyncAzureOpenAI, AsyncOpenAI
from pydantic_ai.tools import ToolDefinition

from genie_console.agent.events import (
    ContentDelta,
    FileInfo,
    RequiredAction,
    RunEvent,
    RunLifecycle,
    ToolOutput,
)
from genie_console.config import Config
from genie_console.exceptions import AgentRunError
from genie_console.log import logger

FAILED_RUN_EVENTS = {"thread.run.failed", "thread.run.cancelled", "thread.run.expired"}


class AgentRuntime(Protocol):
    async def create_agent(
        self,
        model: str,
        name: str,
        instructions: str,
        tools: Sequence[ToolDefinition],
        code_interpreter: bool = True,
    ) -> str: ...

    async def create_thread(self) -> str: ...

    async def post_message(self, thread_id: str, content: str) -> str: ...

    def stream_run(self, thread_id: str, agent_id: str) -> AsyncIterator[RunEvent]: ...

    def submit_tool_outputs(
        self, thread_id: str, run_id: str, tool_outputs: Sequence[ToolOutput]
    ) -> AsyncIterator[RunEvent]: ...

    async def get_file(self, file_id: str) -> FileInfo: ...

    async def get_file_content(self, file_id: str) -> bytes: ...

    async def delete_agent(self, agent_id: str) -> None: ...

    async def delete_thread(self, thread_id: str) -> None: ...


def to_function_tool(definition: ToolDefinition) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": definition.name,
            "description": definition.description or "",
            "parameters": definition.parameters_json_schema,
        },
    }


def to_run_events(event: Any) -> Iterable[RunEvent]:
    """Map one Assistants stream event to zero or more run events."""
    kind = event.event
    if kind == "thread.run.created":
        yield RunLifecycle(status="created", run_id=event.data.id)
    elif kind == "thread.run.completed":
        yield RunLifecycle(status="completed", run_id=event.data.id)
    elif kind == "thread.run.requires_action":
        run = event.data
        for tool_call in run.required_action.submit_tool_outputs.tool_calls:
            yield RequiredAction(
                run_id=run.id,
                tool_call_id=tool_call.id,
                function_name=tool_call.function.name,
                function_arguments=tool_call.function.arguments,
            )
    elif kind == "thread.message.delta":
        for block in event.data.delta.content or []:
            if block.type == "text" and block.text is not None:
                yield ContentDelta(text=block.text.value or "")
            elif block.type == "image_file" and block.image_file is not None:
                yield ContentDelta(image_file_id=block.image_file.file_id)
    elif kind in FAILED_RUN_EVENTS:
        last_error = getattr(event.data, "last_error", None)
        reason = last_error.message if last_error else kind
        raise AgentRunError(f"Run {event.data.id} did not complete: {reason}")
    elif kind == "error":
        raise AgentRunError(f"Agent stream error: {event.data.message}")


class OpenAIAgentRuntime:
    def __init__(self, client: AsyncOpenAI):
        self.client = client

    @classmethod
    def from_config(cls, config: Config) -> OpenAIAgentRuntime:
        if config.agent_api_version:
            config.require("agent_endpoint")
            client = AsyncAzureOpenAI(
                azure_endpoint=config.agent_endpoint,
                api_key=config.agent_api_key,
                api_version=config.agent_api_version,
            )
        else:
            client = AsyncOpenAI(base_url=config.agent_endpoint, api_key=config.agent_api_key)
        return cls(client)

    async def create_agent(
        self,
        model: str,
        name: str,
        instructions: str,
        tools: Sequence[ToolDefinition],
        code_interpreter: bool = True,
    ) -> str:
        tool_params: list[dict[str, Any]] = [to_function_tool(tool) for tool in tools]
        if code_interpreter:
            tool_params.append({"type": "code_interpreter"})
        assistant = await self.client.beta.assistants.create(
            model=model,
            name=name,
            instructions=instructions,
            tools=tool_params,
        )
        logger.info(f"Created agent {assistant.id} ({name})")
        return assistant.id

    async def create_thread(self) -> str:
        thread = await self.client.beta.threads.create()
        logger.info(f"Created thread {thread.id}")
        return thread.id

    async def post_message(self, thread_id: str, content: str) -> str:
        message = await self.client.beta.threads.messages.create(thread_id, role="user", content=content)
        return message.id

    async def stream_run(self, thread_id: str, agent_id: str) -> AsyncIterator[RunEvent]:
        stream = await self.client.beta.threads.runs.create(thread_id=thread_id, assistant_id=agent_id, stream=True)
        async for event in stream:
            for run_event in to_run_events(event):
                yield run_event

    async def submit_tool_outputs(
        self, thread_id: str, run_id: str, tool_outputs: Sequence[ToolOutput]
    ) -> AsyncIterator[RunEvent]:
        stream = await self.client.beta.threads.runs.submit_tool_outputs(
            run_id,
            thread_id=thread_id,
            tool_outputs=[{"tool_call_id": o.tool_call_id, "output": o.output} for o in tool_outputs],
            stream=True,
        )
        async for event in stream:
            for run_event in to_run_events(event):
                yield run_event

    async def get_file(self, file_id: str) -> FileInfo:
        file = await self.client.files.retrieve(file_id)
        return FileInfo(file_id=file.id, filename=file.filename)

    async def get_file_content(self, file_id: str) -> bytes:
        content = await self.client.files.content(file_id)
        return content.content

    async def delete_agent(self, agent_id: str) -> None:
        await self.client.beta.assistants.delete(agent_id)
        logger.info(f"Agent {agent_id} deleted successfully.")

    async def delete_thread(self, thread_id: str) -> None:
        await self.client.beta.threads.delete(thread_id)
        logger.info(f"Thread {thread_id} deleted successfully.")
