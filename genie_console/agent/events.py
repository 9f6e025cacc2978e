"""Events produced by an agent run stream."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field


class RequiredAction(BaseModel):
    """The run is suspended until the named function's output is submitted."""

    kind: Literal["required_action"] = "required_action"
    run_id: str
    tool_call_id: str
    function_name: str
    function_arguments: str


class ContentDelta(BaseModel):
    kind: Literal["content_delta"] = "content_delta"
    text: str = ""
    image_file_id: str | None = None


class RunLifecycle(BaseModel):
    kind: Literal["run_lifecycle"] = "run_lifecycle"
    status: Literal["created", "completed"]
    run_id: str | None = None


RunEvent = Annotated[RequiredAction | ContentDelta | RunLifecycle, Field(discriminator="kind")]


class ToolOutput(BaseModel):
    tool_call_id: str
    output: str


class FileInfo(BaseModel):
    file_id: str
    filename: str
