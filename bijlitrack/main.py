"""
Entry points for the BijliTrack assistant.

    python -m bijlitrack.main chat     # terminal chat panel
    python -m bijlitrack.main relay    # gateway relay server
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import shutil
import signal
import sys
import threading
from typing import TextIO

import uvicorn

from bijlitrack.chat_session import ChatSession
from bijlitrack.config import Configuration
from bijlitrack.llm.client import AssistantClient
from bijlitrack.llm.models import ConversationMessage, MessageRole, Transcript
from bijlitrack.relay import create_app

THINKING = {"en": "Thinking...", "ur": "سوچ رہا ہوں..."}
HELP_TEXT = (
    "Commands: /chat, /translate [en|ur], /lang (toggle target), "
    "/ui [en|ur], /clear, /quit. Ctrl-C stops a reply."
)


def format_message(message: ConversationMessage, width: int) -> str:
    """Render a complete message, right-aligned when it is right-to-left."""
    label = "you" if message.role is MessageRole.USER else "assistant"
    text = f"[{label}] {message.content}"
    if message.direction == "rtl":
        return "\n".join(line.rjust(width) for line in text.splitlines())
    return text


class TerminalRenderer:
    """Writes transcript changes to the terminal as they happen."""

    def __init__(self, out: TextIO = sys.stdout, ui_language: str = "en"):
        self.out = out
        self.ui_language = ui_language
        self._count = 0
        self._streamed_chars = 0

    def on_update(self, transcript: Transcript) -> None:
        messages = transcript.messages
        if len(messages) < self._count:
            self._count = 0
            self._streamed_chars = 0
            return

        # Growth of the reply currently on screen
        if self._count and len(messages) >= self._count:
            current = messages[self._count - 1]
            if (
                current.role is MessageRole.ASSISTANT
                and len(current.content) > self._streamed_chars
            ):
                self.out.write(current.content[self._streamed_chars:])
                self._streamed_chars = len(current.content)

        for message in messages[self._count:]:
            self._count += 1
            self._streamed_chars = len(message.content)
            if message.role is MessageRole.USER:
                continue  # already on screen from the prompt
            if message.direction == "rtl":
                width = shutil.get_terminal_size().columns
                self.out.write("\n" + format_message(message, width))
            else:
                self.out.write("\n[assistant] " + message.content)
        self.out.flush()

    def on_loading(self, loading: bool) -> None:
        if loading:
            self.out.write(THINKING.get(self.ui_language, THINKING["en"]))
        else:
            self.out.write("\n")
        self.out.flush()


class ConsoleInput:
    """Reads stdin on a daemon thread so shutdown never waits on input()."""

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        threading.Thread(target=self._read, daemon=True).start()

    def _read(self) -> None:
        for line in sys.stdin:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, line.rstrip("\n"))
        self._loop.call_soon_threadsafe(self._queue.put_nowait, None)

    async def readline(self) -> str | None:
        return await self._queue.get()


def handle_command(
    session: ChatSession, renderer: TerminalRenderer, line: str
) -> bool:
    """Apply a slash command. Returns False when the user asked to quit."""
    command, _, argument = line.partition(" ")
    argument = argument.strip()

    if command == "/quit":
        return False
    if command == "/chat":
        session.set_mode("chat")
    elif command == "/translate" and argument in ("", "en", "ur"):
        if argument and argument != session.target_language.value:
            session.toggle_target_language()
        session.set_mode("translate")
    elif command == "/lang":
        session.toggle_target_language()
    elif command == "/ui" and argument in ("en", "ur"):
        renderer.ui_language = argument
    elif command == "/clear":
        if not session.clear():
            print("Cannot clear while a reply is streaming.")
    else:
        print(HELP_TEXT)
        return True

    print(session.greeting(renderer.ui_language))
    return True


async def run_chat(config: Configuration) -> None:
    """Interactive chat loop with graceful shutdown handling."""
    chat_config = config.get_chat_config()
    renderer = TerminalRenderer(ui_language=chat_config["ui_language"])

    async with AssistantClient.from_configuration(config) as client:
        session = ChatSession.from_configuration(
            config,
            client,
            on_update=renderer.on_update,
            on_loading=renderer.on_loading,
        )

        shutdown_event = asyncio.Event()

        def interrupt_handler() -> None:
            """Ctrl-C stops the current reply, or quits when idle."""
            if not session.cancel():
                logging.info("Received interrupt, shutting down...")
                shutdown_event.set()

        loop = asyncio.get_running_loop()
        if sys.platform != "win32":
            loop.add_signal_handler(signal.SIGINT, interrupt_handler)
            loop.add_signal_handler(signal.SIGTERM, shutdown_event.set)

        console = ConsoleInput(loop)
        print(session.greeting(renderer.ui_language))
        print(HELP_TEXT)

        try:
            while not shutdown_event.is_set():
                print("> ", end="", flush=True)
                read_task = asyncio.create_task(console.readline())
                shutdown_task = asyncio.create_task(shutdown_event.wait())
                done, pending = await asyncio.wait(
                    [read_task, shutdown_task],
                    return_when=asyncio.FIRST_COMPLETED,
                )
                for task in pending:
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task

                if read_task not in done:
                    break
                line = read_task.result()
                if line is None:
                    break
                if line.startswith("/"):
                    if not handle_command(session, renderer, line):
                        break
                    continue

                session.draft = line
                await session.submit(line)
        finally:
            await session.aclose()
            logging.info("Chat session closed")


def run_relay(config: Configuration) -> None:
    """Serve the gateway relay with uvicorn."""
    relay_config = config.get_relay_config()
    log_level = config.get_logging_config().get("level", "INFO").lower()
    uvicorn.run(
        create_app(config),
        host=relay_config["host"],
        port=relay_config["port"],
        log_level=log_level,
    )


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(prog="bijlitrack")
    parser.add_argument(
        "command", nargs="?", choices=["chat", "relay"], default="chat"
    )
    parser.add_argument("--config", help="Path to a YAML configuration file")
    args = parser.parse_args(argv)

    config = Configuration(args.config)
    level = config.get_logging_config().get("level", "INFO")
    logging.basicConfig(
        level=level, format="%(asctime)s - %(levelname)s - %(message)s"
    )

    if args.command == "relay":
        run_relay(config)
        return

    try:
        asyncio.run(run_chat(config))
    except ValueError as e:
        logging.error(f"Configuration error: {e}")
        raise


if __name__ == "__main__":
    main()
