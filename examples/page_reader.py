"""Page reader: stream answers about a local file through ``get_page_text``.

Demonstrates:

- Serving host content to the model with ``page_text_tool``

- Consuming a turn event by event with ``Runner.iter()``

- OpenTelemetry tracing with ConsoleSpanExporter

Usage:
    Add OPENAI_API_KEY=sk-... to .env, then:
    uv run --env-file=.env examples/page_reader.py README.md
"""

import asyncio
import sys
from pathlib import Path

from chatstream.config import ClientConfig
from chatstream.events import RawResponseEvent, RunCompleteEvent, RunItemEvent
from chatstream.executor import ToolExecutor
from chatstream.instrumentation import instrument, uninstrument
from chatstream.message import Message, MessageRole
from chatstream.message_builder import build_messages
from chatstream.provider import ChatCompletionsProvider
from chatstream.runner import Runner
from chatstream.tools import page_text_tool


SYSTEM_PROMPT = (
    "You are a reading assistant. The user is looking at a document; "
    "fetch it with get_page_text before answering questions about it."
)


async def main(page: Path):
    from opentelemetry import trace
    from opentelemetry.sdk.resources import SERVICE_NAME, Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import SimpleSpanProcessor, ConsoleSpanExporter

    tracer_provider = TracerProvider(
        resource=Resource({SERVICE_NAME: "page-reader"})
    )
    tracer_provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(tracer_provider)

    instrument()
    executor = ToolExecutor([page_text_tool(page.read_text)])
    transcript: list[Message] = []

    print(f"Reading {page}\n")

    async with ChatCompletionsProvider(ClientConfig.from_env(model="gpt-4o-mini")) as provider:
        runner = Runner(provider, executor, max_rounds=4)
        while True:
            try:
                user_input = input("You: ")
            except (KeyboardInterrupt, EOFError):
                print("\nGoodbye!")
                break

            if transcript:
                messages = [*transcript, Message(role=MessageRole.USER, content=user_input)]
            else:
                messages = build_messages(user_input, system_prompt=SYSTEM_PROMPT)

            answer = []
            print("Assistant: ", end="", flush=True)
            async for event in runner.iter(messages):
                if isinstance(event, RawResponseEvent):
                    answer.append(event.content)
                    print(event.content, end="", flush=True)
                elif isinstance(event, RunItemEvent):
                    print(f"[{event.data['tool_name']}] ", end="", flush=True)
                elif isinstance(event, RunCompleteEvent):
                    transcript = [
                        *event.result.messages,
                        Message(role=MessageRole.ASSISTANT, content="".join(answer)),
                    ]
            print("\n")

    uninstrument()


if __name__ == "__main__":
    asyncio.run(main(Path(sys.argv[1] if len(sys.argv) > 1 else "README.md")))
