from __future__ import annotations

from os import PathLike
from pathlib import Path

from genie_console.agent.dispatcher import StreamDispatcher
from genie_console.agent.observers import StreamObservers
from genie_console.agent.runtime import AgentRuntime
from genie_console.agent.tools import ToolRegistry, load_instructions
from genie_console.config import Config
from genie_console.exceptions import ResourceCleanupError
from genie_console.log import logger


def sweep_files(directory: PathLike | str, pattern: str) -> list[ResourceCleanupError]:
    """Delete every file in ``directory`` matching ``pattern``.

    Each file is deleted independently. Failures are logged and returned,
    the sweep always runs to the end.
    """
    errors: list[ResourceCleanupError] = []
    for path in sorted(Path(directory).glob(pattern)):
        if not path.is_file():
            continue
        try:
            path.unlink()
        except OSError as e:
            error = ResourceCleanupError(path.as_posix(), e)
            logger.error(str(error))
            errors.append(error)
        else:
            logger.info(f"Deleted image file: {path}")
    return errors


class AgentSession:
    """One agent and one thread, alive until :meth:`cleanup`."""

    def __init__(
        self,
        runtime: AgentRuntime,
        config: Config,
        registry: ToolRegistry,
        observers: StreamObservers,
        agent_id: str,
        thread_id: str,
    ):
        self.runtime = runtime
        self.config = config
        self.registry = registry
        self.observers = observers
        self.agent_id = agent_id
        self.thread_id = thread_id
        self.dispatcher = StreamDispatcher(runtime, registry, observers, config.image_dir)

    @classmethod
    async def create(
        cls,
        runtime: AgentRuntime,
        config: Config,
        registry: ToolRegistry,
        observers: StreamObservers,
    ) -> AgentSession:
        config.require("agent_model_name")
        instructions = load_instructions(config.agent_instructions_path)

        agent_id = await runtime.create_agent(
            model=config.agent_model_name,
            name=config.agent_name,
            instructions=instructions,
            tools=registry.definitions(),
            code_interpreter=True,
        )
        thread_id = await runtime.create_thread()
        return cls(runtime, config, registry, observers, agent_id, thread_id)

    async def send_message(self, prompt: str) -> str:
        await self.runtime.post_message(self.thread_id, prompt)
        return await self.dispatcher.dispatch(self.thread_id, self.agent_id)

    async def cleanup(self) -> list[ResourceCleanupError]:
        await self.runtime.delete_thread(self.thread_id)
        await self.runtime.delete_agent(self.agent_id)
        return sweep_files(self.config.image_dir, self.config.image_pattern)
