from __future__ import annotations

import asyncio
from pathlib import Path

import click

from genie_console.agent import (
    AgentSession,
    OpenAIAgentRuntime,
    StreamObservers,
    ToolRegistry,
    build_ask_genie_tool,
    load_instructions,
)
from genie_console.config import Config, get_config
from genie_console.genie import GenieClient, GeniePoller, MessageStatus, StartedConversation
from genie_console.log import logger


def print_genie_information(
    message_id: str,
    conversation_id: str,
    status: MessageStatus,
    query_result: str = "",
) -> None:
    click.echo("=== Genie Information ===")
    click.echo(f"Message ID: {message_id}")
    click.echo(f"Conversation ID: {conversation_id}")
    click.echo(f"Status: {status.status}")
    click.echo(f"Attachments ID: {status.attachment_id}")
    click.echo(f"Query Description: {status.description}")
    click.echo(f"Generated Query: {status.query}")
    click.echo(f"Query Result: {query_result}")
    click.echo("=========================")
    click.echo()


async def call_genie(config: Config, prompt: str) -> None:
    def on_status(started: StartedConversation, status: MessageStatus) -> None:
        print_genie_information(started.message_id, started.conversation_id, status)

    async with GenieClient.from_config(config) as client:
        poller = GeniePoller.from_config(client, config)
        click.echo("Starting conversation...")
        answer = await poller.ask(prompt, on_status=on_status)

    click.echo("Message processing is completed.")
    print_genie_information(answer.message_id, answer.conversation_id, answer.status, answer.result)


def _echo_image(path: Path) -> None:
    click.echo(f"New image received: ![{path.name}]({path.as_posix()})")


async def call_agent(config: Config) -> None:
    runtime = OpenAIAgentRuntime.from_config(config)
    async with GenieClient.from_config(config) as client:
        registry = ToolRegistry()
        registry.register(
            build_ask_genie_tool(
                GeniePoller.from_config(client, config),
                load_instructions(config.tool_instructions_path),
            )
        )
        observers = StreamObservers()
        observers.subscribe_text(lambda text: click.echo(text, nl=False))
        observers.subscribe_image(_echo_image)

        session = await AgentSession.create(runtime, config, registry, observers)
        try:
            while True:
                prompt = click.prompt(
                    "Please enter your prompt for the AI Agent (type 'exit' to quit)",
                    default="",
                    show_default=False,
                )
                if prompt.strip().lower() == "exit":
                    click.echo("Exiting AI Agent interaction.")
                    break
                if not prompt.strip():
                    click.echo("Prompt cannot be empty. Please try again.")
                    continue

                await session.send_message(prompt)
                click.echo()
        finally:
            errors = await session.cleanup()
            if errors:
                logger.warning(f"{len(errors)} image file(s) could not be deleted")


def run_menu(config: Config) -> None:
    while True:
        click.echo("=== Main Menu ===")
        click.echo("1. Call Genie API")
        click.echo("2. Call AI Agent")
        click.echo("3. Exit")
        choice = click.prompt("Please select an option (1-3)", default="", show_default=False).strip()

        if choice == "1":
            prompt = click.prompt("Please enter your prompt")
            asyncio.run(call_genie(config, prompt))
        elif choice == "2":
            asyncio.run(call_agent(config))
        elif choice == "3":
            click.echo("Exiting the application. Goodbye!")
            return
        else:
            click.echo("Invalid choice. Please try again.")

        click.echo()


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON settings file. Defaults to appsettings.json and GENIE_CONSOLE_* variables.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None):
    ctx.obj = Config.from_json(config_path) if config_path else get_config()
    if ctx.invoked_subcommand is None:
        run_menu(ctx.obj)


@cli.command()
@click.argument("prompt", required=False)
@click.pass_obj
def ask(config: Config, prompt: str | None):
    """Ask Genie directly and print each status until the result."""
    asyncio.run(call_genie(config, prompt or click.prompt("Please enter your prompt")))


@cli.command()
@click.pass_obj
def agent(config: Config):
    """Chat with the AI agent, which may call Genie as a tool."""
    asyncio.run(call_agent(config))


if __name__ == "__main__":
    cli()
