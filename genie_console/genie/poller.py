from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

from genie_console.config import Config
from genie_console.exceptions import MessageFailedError, PollCancelled, PollTimeout
from genie_console.genie.client import GenieClient
from genie_console.genie.models import GenieAnswer, MessageStatus, StartedConversation
from genie_console.log import logger

DEFAULT_POLLING_INTERVAL = 5.0

FAILURE_STATUSES = frozenset({"FAILED", "CANCELLED", "QUERY_RESULT_EXPIRED"})
PENDING_STATUSES = frozenset({
    "SUBMITTED",
    "FETCHING_METADATA",
    "FILTERING_CONTEXT",
    "ASKING_AI",
    "PENDING_WAREHOUSE",
    "EXECUTING_QUERY",
    "RUNNING",
    "IN_PROGRESS",
    "PENDING",
})

StatusCallback = Callable[[StartedConversation, MessageStatus], None]
Sleeper = Callable[[float], Awaitable[None]]


class GeniePoller:
    """Drives a Genie message from start to its query result.

    Polls at a fixed interval until the message status is ``COMPLETED``.
    The loop is bounded by ``max_attempts`` status fetches and a ``timeout``
    in seconds, either of which may be ``None`` to disable it.
    """

    def __init__(
        self,
        client: GenieClient,
        polling_interval: float = DEFAULT_POLLING_INTERVAL,
        *,
        max_attempts: int | None = 120,
        timeout: float | None = 600.0,
        max_unknown_statuses: int = 3,
        sleep: Sleeper | None = None,
    ):
        self.client = client
        self.polling_interval = polling_interval
        self.max_attempts = max_attempts
        self.timeout = timeout
        self.max_unknown_statuses = max_unknown_statuses
        self._sleep = sleep

    @classmethod
    def from_config(cls, client: GenieClient, config: Config) -> GeniePoller:
        return cls(
            client,
            config.polling_interval,
            max_attempts=config.polling_max_attempts,
            timeout=config.polling_timeout_seconds,
            max_unknown_statuses=config.polling_max_unknown_statuses,
        )

    async def run_to_completion(self, prompt: str) -> str:
        answer = await self.ask(prompt)
        return answer.result

    async def ask(
        self,
        prompt: str,
        *,
        on_status: StatusCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> GenieAnswer:
        logger.info("Genie starting conversation...")
        started = await self.client.start_conversation(prompt)
        status = await self.wait_for_completion(started, on_status=on_status, cancel_event=cancel_event)
        logger.info("Genie message processing is completed.")

        result = await self.client.retrieve_query_result(
            started.conversation_id, started.message_id, status.attachment_id
        )
        return GenieAnswer(
            conversation_id=started.conversation_id,
            message_id=started.message_id,
            status=status,
            result=result,
        )

    async def wait_for_completion(
        self,
        started: StartedConversation,
        *,
        on_status: StatusCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> MessageStatus:
        deadline = time.monotonic() + self.timeout if self.timeout is not None else None
        attempts = 0
        unknown = 0

        while True:
            self._check_cancelled(started, cancel_event)
            status = await self.client.get_message_status(started.conversation_id, started.message_id)
            attempts += 1
            logger.debug(f"Message {started.message_id} status: {status.status} (attempt {attempts})")
            if on_status:
                on_status(started, status)

            if status.is_completed:
                return status
            if status.status in FAILURE_STATUSES:
                raise MessageFailedError(started.message_id, status.status, "reported by server")

            if status.status in PENDING_STATUSES:
                unknown = 0
            else:
                unknown += 1
                logger.warning(f"Unrecognized status {status.status!r} for message {started.message_id}")
                if unknown > self.max_unknown_statuses:
                    raise MessageFailedError(
                        started.message_id,
                        status.status,
                        f"unrecognized status observed {unknown} times in a row",
                    )

            if self.max_attempts is not None and attempts >= self.max_attempts:
                raise PollTimeout(f"Message {started.message_id} not completed after {attempts} status checks")

            delay = self.polling_interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise PollTimeout(f"Message {started.message_id} not completed within {self.timeout} seconds")
                delay = min(delay, remaining)
            await self._wait(delay, cancel_event)

    async def _wait(self, delay: float, cancel_event: asyncio.Event | None) -> None:
        sleep = self._sleep or asyncio.sleep
        if cancel_event is None:
            await sleep(delay)
            return

        sleeper = asyncio.ensure_future(sleep(delay))
        cancelled = asyncio.ensure_future(cancel_event.wait())
        done, pending = await asyncio.wait({sleeper, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        if sleeper in done:
            sleeper.result()

    @staticmethod
    def _check_cancelled(started: StartedConversation, cancel_event: asyncio.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise PollCancelled(f"Polling for message {started.message_id} was cancelled")
