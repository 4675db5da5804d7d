"""Entry point for the lint conversation of a single document."""

from __future__ import annotations

from .orchestration.pipeline.execute import ModelClient
from .orchestration.runner import ConversationResult, ConversationRunner, ToolCallback
from .orchestration.types import ConversationConfig, Transcript
from .prompts import system_prompt, user_prompt
from .tools.read_file import FileResolver
from .tools.registry import build_lint_tools

__all__ = ["start_transcript", "run_conversation", "conduct_conversation"]


def start_transcript(document_identifier: str, annotated_content: str) -> Transcript:
    """Return the initial system + user transcript for a document."""

    return Transcript.start(system_prompt(), user_prompt(document_identifier, annotated_content))


async def conduct_conversation(
    client: ModelClient,
    document_identifier: str,
    annotated_content: str,
    *,
    resolver: FileResolver | None = None,
    config: ConversationConfig | None = None,
    tool_callback: ToolCallback | None = None,
) -> ConversationResult:
    """Run the tool-calling loop and return the transcript with call counts."""

    tools = build_lint_tools(document_identifier, resolver)
    runner = ConversationRunner(
        client,
        tools,
        config=config,
        tools=tools.openai_tools(),
    )
    return await runner.run(
        start_transcript(document_identifier, annotated_content),
        tool_callback=tool_callback,
    )


async def run_conversation(
    client: ModelClient,
    document_identifier: str,
    annotated_content: str,
    *,
    resolver: FileResolver | None = None,
    config: ConversationConfig | None = None,
) -> Transcript:
    """Drive the conversation for ``document_identifier`` to its terminal turn."""

    result = await conduct_conversation(
        client,
        document_identifier,
        annotated_content,
        resolver=resolver,
        config=config,
    )
    return result.transcript
