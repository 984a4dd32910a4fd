#!/usr/bin/env python3
"""
Tests for the terminal front end: incremental rendering and slash commands.
"""

import io

import pytest

from bijlitrack.chat_session import ChatSession
from bijlitrack.llm.models import (
    ChatMode,
    ConversationMessage,
    MessageRole,
    TargetLanguage,
    Transcript,
    TranslateMode,
)
from bijlitrack.main import HELP_TEXT, TerminalRenderer, format_message, handle_command


def unused_handler(request):
    raise AssertionError("no request expected")


@pytest.fixture
def session(make_client):
    return ChatSession(make_client(unused_handler))


class TestTerminalRenderer:
    """Tests for writing transcript updates to a stream."""

    def test_streams_reply_incrementally(self):
        """Test only new text is written as the reply grows."""
        out = io.StringIO()
        renderer = TerminalRenderer(out)
        transcript = Transcript().append(
            ConversationMessage(MessageRole.USER, "hello")
        )

        renderer.on_update(transcript)
        transcript = transcript.append(
            ConversationMessage(MessageRole.ASSISTANT, "Hi")
        )
        renderer.on_update(transcript)
        renderer.on_update(transcript.replace_last_content("Hi there"))

        assert out.getvalue() == "\n[assistant] Hi there"

    def test_loading_indicator_in_ui_language(self):
        out = io.StringIO()
        renderer = TerminalRenderer(out, ui_language="ur")
        renderer.on_loading(True)
        renderer.on_loading(False)
        assert out.getvalue() == "سوچ رہا ہوں...\n"

    def test_clear_resets_position(self):
        """Test a cleared transcript starts rendering from scratch."""
        out = io.StringIO()
        renderer = TerminalRenderer(out)
        transcript = Transcript().append(
            ConversationMessage(MessageRole.ASSISTANT, "one")
        )
        renderer.on_update(transcript)
        renderer.on_update(Transcript())
        renderer.on_update(transcript)
        assert out.getvalue() == "\n[assistant] one\n[assistant] one"

    def test_rtl_message_right_aligned(self):
        message = ConversationMessage(MessageRole.ASSISTANT, "سلام")
        rendered = format_message(message, width=40)
        assert len(rendered) == 40
        assert rendered.endswith("[assistant] سلام")
        assert format_message(
            ConversationMessage(MessageRole.USER, "hi"), width=40
        ) == "[you] hi"


class TestHandleCommand:
    """Tests for slash commands."""

    def test_quit(self, session):
        assert handle_command(session, TerminalRenderer(io.StringIO()), "/quit") is False

    def test_translate_with_language(self, session, capsys):
        renderer = TerminalRenderer(io.StringIO())
        assert handle_command(session, renderer, "/translate en") is True
        assert session.mode == TranslateMode(TargetLanguage.ENGLISH)
        assert "translate to English" in capsys.readouterr().out

    def test_chat_and_language_toggle(self, session):
        renderer = TerminalRenderer(io.StringIO())
        handle_command(session, renderer, "/translate")
        handle_command(session, renderer, "/lang")
        assert session.mode == TranslateMode(TargetLanguage.ENGLISH)
        handle_command(session, renderer, "/chat")
        assert session.mode == ChatMode()

    def test_ui_language(self, session):
        renderer = TerminalRenderer(io.StringIO())
        handle_command(session, renderer, "/ui ur")
        assert renderer.ui_language == "ur"

    @pytest.mark.parametrize("line", ["/translate fr", "/ui de", "/unknown"])
    def test_invalid_commands_print_help(self, session, capsys, line):
        renderer = TerminalRenderer(io.StringIO())
        assert handle_command(session, renderer, line) is True
        assert session.mode == ChatMode()
        assert HELP_TEXT in capsys.readouterr().out
