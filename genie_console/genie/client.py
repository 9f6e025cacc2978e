"""HTTP client for the Genie conversation API."""

from __future__ import annotations

import json
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from genie_console.config import Config
from genie_console.exceptions import ParseError, ProtocolError
from genie_console.genie.models import GenieMessage, MessageStatus, StartedConversation
from genie_console.log import logger

ModelT = TypeVar("ModelT", bound=BaseModel)


class GenieClient:
    """Stateless client for one Genie space.

    The bearer token is fixed at construction. The same client can be used
    for any number of conversations in the space.
    """

    def __init__(
        self,
        base_address: str,
        space_id: str,
        auth_token: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            base_address: The base URL of the workspace hosting the Genie API.
            space_id: The Genie space to talk to.
            auth_token: Bearer token sent with every request.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport, used to fake the server in tests.
        """
        self.base_address = base_address
        self.space_id = space_id
        self.client = httpx.AsyncClient(
            base_url=base_address,
            headers={"Authorization": f"Bearer {auth_token}"},
            timeout=timeout,
            transport=transport,
        )
        logger.info(f"Initialized Genie client for space {space_id} at {base_address}")

    @classmethod
    def from_config(cls, config: Config, transport: httpx.AsyncBaseTransport | None = None) -> GenieClient:
        config.require("space_id", "auth_token", "base_address")
        return cls(
            config.base_address,
            config.space_id,
            config.auth_token,
            timeout=config.http_timeout_seconds,
            transport=transport,
        )

    @property
    def space_path(self) -> str:
        return f"/api/2.0/genie/spaces/{self.space_id}"

    def message_path(self, conversation_id: str, message_id: str) -> str:
        return f"{self.space_path}/conversations/{conversation_id}/messages/{message_id}"

    async def start_conversation(self, content: str) -> StartedConversation:
        """Start a new conversation with the given prompt.

        Args:
            content: The content of the initial message.

        Returns:
            The message and conversation ids assigned by the server.
        """
        url = f"{self.space_path}/start-conversation"
        logger.info(f"Making POST request to: {url}")
        response = await self.client.post(url, json={"content": content})
        started = self._parse(_ensure_success(response), StartedConversation)
        logger.info(f"Started conversation {started.conversation_id} with message {started.message_id}")
        return started

    async def get_message_status(self, conversation_id: str, message_id: str) -> MessageStatus:
        """Fetch the status of a message.

        Only the first attachment is inspected. A message without
        attachments is not an error: the attachment fields stay empty.

        Args:
            conversation_id: The ID of the conversation.
            message_id: The ID of the message.

        Returns:
            The status plus the attachment id, query and description if any.
        """
        url = self.message_path(conversation_id, message_id)
        logger.info(f"Making GET request to: {url}")
        response = await self.client.get(url)
        message = self._parse(_ensure_success(response), GenieMessage)
        return MessageStatus.from_message(message)

    async def retrieve_query_result(self, conversation_id: str, message_id: str, attachment_id: str) -> str:
        """Retrieve the query result of an attachment.

        Args:
            conversation_id: The ID of the conversation.
            message_id: The ID of the message.
            attachment_id: The ID of the attachment.

        Returns:
            The response body, unparsed.
        """
        url = f"{self.message_path(conversation_id, message_id)}/query-result/{attachment_id}"
        logger.info(f"Making GET request to: {url}")
        response = await self.client.get(url)
        return _ensure_success(response).text

    def _parse(self, response: httpx.Response, model: type[ModelT]) -> ModelT:
        try:
            data: Any = response.json()
        except json.JSONDecodeError as e:
            raise ParseError(f"Response from {response.request.url} is not JSON") from e
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ParseError(f"Unexpected response from {response.request.url}: {e}") from e

    async def close(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> GenieClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def _ensure_success(response: httpx.Response) -> httpx.Response:
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise ProtocolError(response.status_code, str(response.request.url), response.text) from e
    return response
