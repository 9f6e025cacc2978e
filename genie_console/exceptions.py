from __future__ import annotations


class GenieConsoleError(Exception):
    pass


class ConfigurationError(GenieConsoleError):
    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required configuration: {', '.join(missing)}")


class ProtocolError(GenieConsoleError):
    """Non-success HTTP status from the Genie API."""

    def __init__(self, status_code: int, url: str, body: str = ""):
        self.status_code = status_code
        self.url = url
        self.body = body
        super().__init__(f"Genie API returned {status_code} for {url}")


class ParseError(GenieConsoleError):
    """A required field is absent or a payload is not valid JSON."""


class PollTimeout(GenieConsoleError):
    pass


class PollCancelled(GenieConsoleError):
    pass


class MessageFailedError(GenieConsoleError):
    def __init__(self, message_id: str, status: str, reason: str):
        self.message_id = message_id
        self.status = status
        super().__init__(f"Genie message {message_id} ended with status {status}: {reason}")


class AgentRunError(GenieConsoleError):
    pass


class ResourceCleanupError(GenieConsoleError):
    def __init__(self, path: str, error: Exception):
        self.path = path
        self.error = error
        super().__init__(f"Failed to delete file {path}: {error}")
