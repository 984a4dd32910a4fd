"""
Chat session for the BijliTrack assistant.

A session owns the transcript of one open chat panel. It:
- Appends the user's message and posts the conversation to the assistant
- Grows the assistant reply as deltas stream in
- Converts every failure into a single assistant message
- Keeps exactly one request in flight, with explicit cancellation
"""

from __future__ import annotations

import asyncio
import contextlib
import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING

from bijlitrack.llm.client import AssistantClient
from bijlitrack.llm.models import (
    AssistantRequest,
    ChatMode,
    ConversationMessage,
    MessageRole,
    RequestMode,
    TargetLanguage,
    Transcript,
    TranslateMode,
    build_mode,
)
from bijlitrack.logging_utils import (
    AssistantErrorHandler,
    ContextualLogger,
    operation_context,
)

if TYPE_CHECKING:                                        # pragma: no cover
    from bijlitrack.config import Configuration

TranscriptObserver = Callable[[Transcript], None]
LoadingObserver = Callable[[bool], None]

CHAT_GREETINGS = {
    "en": "Hello! I'm your BijliTrack assistant. How can I help you today?",
    "ur": (
        "السلام علیکم! میں آپ کا بجلی ٹریک اسسٹنٹ ہوں۔ "
        "میں آج آپ کی کیسے مدد کر سکتا ہوں؟"
    ),
}
URDU_LANGUAGE_NAMES = {
    TargetLanguage.ENGLISH: "انگریزی",
    TargetLanguage.URDU: "اردو",
}


class ChatSession:
    """
    Conversation owner - one per chat panel
    1. Takes your message
    2. Sends it with the history to the assistant
    3. Shows the reply as it streams in
    4. Shows an error message instead if anything fails
    """

    def __init__(
        self,
        client: AssistantClient,
        *,
        mode: RequestMode | None = None,
        target_language: TargetLanguage = TargetLanguage.URDU,
        on_update: TranscriptObserver | None = None,
        on_loading: LoadingObserver | None = None,
        session_id: str | None = None,
    ):
        self.client = client
        self.session_id = session_id or str(uuid.uuid4())
        self.draft = ""

        self._target_language = target_language
        self._mode: RequestMode = mode or ChatMode()
        self._transcript = Transcript()
        self._loading = False
        self._inflight: asyncio.Task[None] | None = None
        self._cancel_requested = False

        self._on_update = on_update
        self._on_loading = on_loading
        self._logger = ContextualLogger({"session_id": self.session_id})

    @classmethod
    def from_configuration(
        cls,
        configuration: Configuration,
        client: AssistantClient,
        **kwargs,
    ) -> ChatSession:
        """Create a session using the configured mode and language defaults."""
        chat_config = configuration.get_chat_config()
        target_language = TargetLanguage(chat_config["default_target_language"])
        mode_type = chat_config["default_mode"]
        mode = build_mode(
            mode_type, target_language if mode_type == "translate" else None
        )
        return cls(client, mode=mode, target_language=target_language, **kwargs)

    # ------------------------------------------------------------------ #
    # State                                                              #
    # ------------------------------------------------------------------ #

    @property
    def transcript(self) -> Transcript:
        return self._transcript

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def mode(self) -> RequestMode:
        return self._mode

    @property
    def target_language(self) -> TargetLanguage:
        return self._target_language

    def set_mode(self, mode_type: str) -> RequestMode:
        """Switch between ``chat`` and ``translate``."""
        language = self._target_language if mode_type == "translate" else None
        self._mode = build_mode(mode_type, language)
        return self._mode

    def toggle_target_language(self) -> TargetLanguage:
        """Flip the translation target between English and Urdu."""
        self._target_language = self._target_language.toggled()
        if isinstance(self._mode, TranslateMode):
            self._mode = TranslateMode(self._target_language)
        return self._target_language

    def greeting(self, ui_language: str = "en") -> str:
        """Empty-state text for the panel in the UI language."""
        if isinstance(self._mode, ChatMode):
            return CHAT_GREETINGS.get(ui_language, CHAT_GREETINGS["en"])

        target = self._mode.target_language
        if ui_language == "ur":
            return f"{URDU_LANGUAGE_NAMES[target]} میں ترجمہ کرنے کے لیے ٹائپ کریں"
        return f"Type text to translate to {target.display_name}"

    def clear(self) -> bool:
        """Empty the transcript; refused while a reply is streaming."""
        if self._loading:
            return False
        self._set_transcript(Transcript())
        return True

    # ------------------------------------------------------------------ #
    # Requests                                                           #
    # ------------------------------------------------------------------ #

    async def submit(
        self,
        user_text: str,
        mode: RequestMode | str | None = None,
        target_language: TargetLanguage | str | None = None,
    ) -> bool:
        """
        Send ``user_text`` and stream the assistant's reply into the transcript.

        Returns:
            False when the text is blank or a request is already in flight
            (nothing is sent), True otherwise. Failures never raise; they
            become an assistant message.

        Raises:
            ValueError: If ``mode`` and ``target_language`` do not form a
                valid request mode.
        """
        if self._loading:
            self._logger.debug("Submission ignored, request already in flight")
            return False
        if not user_text.strip():
            return False

        request_mode = self._resolve_mode(mode, target_language)

        self._set_transcript(
            self._transcript.append(ConversationMessage(MessageRole.USER, user_text))
        )
        self.draft = ""
        self._set_loading(True)

        request = AssistantRequest.from_transcript(self._transcript, request_mode)
        self._cancel_requested = False
        self._inflight = asyncio.create_task(self._run_request(request))

        try:
            await self._inflight
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            if not self._cancel_requested:
                raise
            self._logger.info("Request cancelled", messages=len(self._transcript))
        finally:
            self._inflight = None
            self._set_loading(False)

        return True

    def cancel(self) -> bool:
        """Stop the in-flight reply at its next suspension point."""
        if self._inflight is None or self._inflight.done():
            return False
        self._cancel_requested = True
        self._inflight.cancel()
        return True

    async def aclose(self) -> None:
        """Tear down the session, cancelling any in-flight request."""
        inflight = self._inflight
        if self.cancel() and inflight is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await inflight

    async def _run_request(self, request: AssistantRequest) -> None:
        reply_started = False
        context = {
            "session_id": self.session_id,
            "type": request.type,
            "messages": len(request.messages),
        }

        try:
            async with operation_context("assistant_request", context=context) as op_logger:
                async for chunk in self.client.stream_reply(request):
                    if reply_started:
                        updated = self._transcript.replace_last_content(
                            chunk.accumulated_content
                        )
                    else:
                        updated = self._transcript.append(
                            ConversationMessage(
                                MessageRole.ASSISTANT, chunk.accumulated_content
                            )
                        )
                        reply_started = True
                    self._set_transcript(updated)

                op_logger.info(
                    "Reply received",
                    reply_started=reply_started,
                    characters=len(self._transcript[-1].content) if reply_started else 0,
                )
        except Exception as e:
            # Submit boundary: every failure becomes a chat message
            error_category = AssistantErrorHandler.classify_error(e)
            self._logger.warning(
                "Reply failed",
                error_type=type(e).__name__,
                error_category=error_category,
                error_message=str(e),
                partial_reply=reply_started,
            )
            self._set_transcript(
                self._transcript.append(
                    ConversationMessage(
                        MessageRole.ASSISTANT, AssistantErrorHandler.user_message(e)
                    )
                )
            )

    def _resolve_mode(
        self,
        mode: RequestMode | str | None,
        target_language: TargetLanguage | str | None,
    ) -> RequestMode:
        if isinstance(mode, ChatMode | TranslateMode):
            if target_language is not None:
                raise ValueError(
                    "target_language cannot be combined with a RequestMode instance"
                )
            return mode

        mode_type = mode if mode is not None else self._mode.type
        if mode_type == "translate" and target_language is None:
            target_language = (
                self._mode.target_language
                if isinstance(self._mode, TranslateMode)
                else self._target_language
            )
        return build_mode(mode_type, target_language)

    def _set_transcript(self, transcript: Transcript) -> None:
        self._transcript = transcript
        if self._on_update is not None:
            self._on_update(transcript)

    def _set_loading(self, loading: bool) -> None:
        self._loading = loading
        if self._on_loading is not None:
            self._on_loading(loading)
