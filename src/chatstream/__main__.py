"""Interactive streamed chat: ``python -m chatstream``."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from chatstream.config import ClientConfig, configure_logging
from chatstream.executor import ToolExecutor
from chatstream.message import Message, MessageRole
from chatstream.message_builder import build_messages
from chatstream.provider import ChatCompletionsProvider
from chatstream.runner import Runner
from chatstream.tools import page_text_tool


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="chatstream", description=__doc__)
    parser.add_argument("--model", help="model name (default: gpt-4.1)")
    parser.add_argument("--base-url", help="chat-completions endpoint URL")
    parser.add_argument("--system", help="system prompt for the conversation")
    parser.add_argument(
        "--page", type=Path,
        help="text file served to the model through get_page_text",
    )
    parser.add_argument("--max-rounds", type=int, help="cap on tool rounds per turn")
    parser.add_argument("--verbose", action="store_true", help="log at debug level")
    return parser.parse_args(argv)


async def chat_loop(args: argparse.Namespace) -> None:
    config = ClientConfig.from_env(
        model=args.model, base_url=args.base_url, max_rounds=args.max_rounds,
    )
    executor = ToolExecutor()
    if args.page is not None:
        executor.register(page_text_tool(args.page.read_text))

    async with ChatCompletionsProvider(config) as provider:
        runner = Runner(provider, executor, max_rounds=config.max_rounds)
        transcript: list[Message] = []
        while True:
            try:
                user_input = input("User: ")
            except (EOFError, KeyboardInterrupt):
                print("\nFarewell!")
                return
            if not user_input.strip():
                continue

            if transcript:
                messages = [*transcript, Message(role=MessageRole.USER, content=user_input)]
            else:
                messages = build_messages(user_input, system_prompt=args.system)

            chunks: list[str] = []

            def on_content(text: str) -> None:
                chunks.append(text)
                print(text, end="", flush=True)

            def on_error(error: Exception) -> None:
                print(f"\n[error] {error}", file=sys.stderr)

            print("Assistant: ", end="", flush=True)
            result = await runner.run_turn(messages, on_content, on_error=on_error)
            print()
            if result is not None:
                transcript = [
                    *result.messages,
                    Message(role=MessageRole.ASSISTANT, content="".join(chunks)),
                ]


def main(argv=None) -> None:
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)
    asyncio.run(chat_loop(args))


if __name__ == "__main__":
    main()
