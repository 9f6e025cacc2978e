from genie_console.agent.dispatcher import DispatchState, StreamDispatcher
from genie_console.agent.events import ContentDelta, FileInfo, RequiredAction, RunEvent, RunLifecycle, ToolOutput
from genie_console.agent.observers import StreamObservers
from genie_console.agent.runtime import AgentRuntime, OpenAIAgentRuntime
from genie_console.agent.session import AgentSession, sweep_files
from genie_console.agent.tools import RegisteredTool, ToolRegistry, build_ask_genie_tool, load_instructions

__all__ = [
    "AgentRuntime",
    "AgentSession",
    "ContentDelta",
    "DispatchState",
    "FileInfo",
    "OpenAIAgentRuntime",
    "RegisteredTool",
    "RequiredAction",
    "RunEvent",
    "RunLifecycle",
    "StreamDispatcher",
    "StreamObservers",
    "ToolOutput",
    "ToolRegistry",
    "build_ask_genie_tool",
    "load_instructions",
    "sweep_files",
]
