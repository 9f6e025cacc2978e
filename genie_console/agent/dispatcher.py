from __future__ import annotations

import enum
from collections.abc import AsyncIterator
from os import PathLike
from pathlib import Path

from genie_console.agent.events import (
    ContentDelta,
    RequiredAction,
    RunEvent,
    RunLifecycle,
    ToolOutput,
)
from genie_console.agent.observers import StreamObservers
from genie_console.agent.runtime import AgentRuntime
from genie_console.agent.tools import ToolRegistry
from genie_console.log import logger


class DispatchState(str, enum.Enum):
    STREAMING = "streaming"
    AWAITING_TOOL_OUTPUTS = "awaiting_tool_outputs"
    COMPLETED = "completed"


class StreamDispatcher:
    """
    Consumes the update streams of one agent run.

    Each stream is read to exhaustion. Tool outputs collected along the way
    are then submitted in first-seen order, which opens the next stream.
    The run is done after a stream that requested no tool calls.
    """

    def __init__(
        self,
        runtime: AgentRuntime,
        registry: ToolRegistry,
        observers: StreamObservers,
        image_dir: PathLike | str,
    ):
        self.runtime = runtime
        self.registry = registry
        self.observers = observers
        self.image_dir = Path(image_dir)
        self.state = DispatchState.COMPLETED

    async def dispatch(self, thread_id: str, agent_id: str) -> str:
        transcript: list[str] = []
        stream = self.runtime.stream_run(thread_id, agent_id)

        while True:
            self.state = DispatchState.STREAMING
            run_id, tool_outputs = await self._consume(stream, transcript)
            if not tool_outputs:
                break

            self.state = DispatchState.AWAITING_TOOL_OUTPUTS
            logger.info(f"Submitting {len(tool_outputs)} tool output(s) to run {run_id}")
            stream = self.runtime.submit_tool_outputs(thread_id, run_id, tool_outputs)

        self.state = DispatchState.COMPLETED
        return "".join(transcript)

    async def _consume(
        self, stream: AsyncIterator[RunEvent], transcript: list[str]
    ) -> tuple[str | None, list[ToolOutput]]:
        run_id: str | None = None
        tool_outputs: list[ToolOutput] = []
        skipped: list[str] = []

        async for event in stream:
            if isinstance(event, RequiredAction):
                logger.info(
                    f"Tool call {event.tool_call_id}: {event.function_name}({event.function_arguments})"
                )
                tool_output = await self.registry.resolve(
                    event.function_name, event.tool_call_id, event.function_arguments
                )
                if tool_output is None:
                    logger.warning(f"No tool registered for {event.function_name}, skipping {event.tool_call_id}")
                    skipped.append(event.tool_call_id)
                else:
                    logger.debug(f"Tool output for {tool_output.tool_call_id}: {tool_output.output}")
                    tool_outputs.append(tool_output)
                run_id = event.run_id
            elif isinstance(event, ContentDelta):
                if event.image_file_id:
                    self.observers.emit_image(await self._download_image(event.image_file_id))
                transcript.append(event.text)
                self.observers.emit_text(event.text)
            elif isinstance(event, RunLifecycle):
                if event.status == "created":
                    logger.info("--- Run started! ---")
                else:
                    logger.info("--- Run completed! ---")

        if skipped and tool_outputs:
            # The runtime rejects a submission that does not answer every pending tool call.
            logger.warning(
                f"Submitting {len(tool_outputs)} of {len(tool_outputs) + len(skipped)} tool outputs for run {run_id}, "
                f"the run is expected to reject it (unanswered: {', '.join(skipped)})"
            )
        return run_id, tool_outputs

    async def _download_image(self, file_id: str) -> Path:
        info = await self.runtime.get_file(file_id)
        content = await self.runtime.get_file_content(file_id)
        path = self.image_dir / (Path(info.filename).name or f"{file_id}.png")
        path.write_bytes(content)
        logger.info(f"Saved image {file_id} to {path}")
        return path
