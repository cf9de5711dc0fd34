"""
Gemini provider.

Conversation state lives in a provider-managed chat session; structured calls
use Gemini's native JSON mode with a pydantic response schema.
"""
import logging
from typing import Any, AsyncIterator, Optional, Sequence

import httpx
from google import genai
from google.genai import errors, types

from interview_coach.core.config import settings
from interview_coach.core.exceptions import (
    ConfigurationError,
    MalformedResponseError,
    TransportError,
    UninitializedSessionError,
)
from interview_coach.core.prompts import (
    generate_evaluation_prompt,
    generate_interviewer_instruction,
    generate_resume_score_prompt,
    generate_roadmap_prompt,
)
from interview_coach.schemas.interview import (
    Evaluation,
    InterviewType,
    Level,
    ResumeMatchResult,
    RoadmapItemDraft,
    SessionGoal,
    Utterance,
)
from interview_coach.services.pipeline.llm_parser import parse_llm_response
from interview_coach.services.providers.base import (
    check_roadmap_shape,
    format_transcript,
    require_transcript,
    split_data_url,
)

logger = logging.getLogger(__name__)

_ROLE_NAMES = {"user": "user", "model": "assistant"}


class GeminiProvider:
    """AIProvider backed by google-genai's async chat sessions."""

    name = "gemini"

    def __init__(self, api_key: str = "", model: str = None, client: Optional[genai.Client] = None):
        if client is None:
            if not api_key:
                raise ConfigurationError("GEMINI_API_KEY is not set.")
            client = genai.Client(api_key=api_key)
        self._client = client
        self._model = model or settings.GEMINI_MODEL
        self._chat = None
        self._instruction: Optional[str] = None

    def start_chat(self, goal: SessionGoal, interview_types: Sequence[InterviewType]) -> None:
        self._instruction = generate_interviewer_instruction(goal.role, interview_types)
        self._chat = self._client.aio.chats.create(
            model=self._model,
            config=types.GenerateContentConfig(system_instruction=self._instruction),
        )
        logger.info(f"Gemini chat started for role '{goal.role}'")

    async def stream_next_turn(self, message: str) -> AsyncIterator[str]:
        chat = self._chat
        if chat is None:
            raise UninitializedSessionError("Chat not initialized. Call start_chat first.")

        produced = []
        try:
            stream = await chat.send_message_stream(message)
            async for chunk in stream:
                text = chunk.text
                if text:
                    produced.append(text)
                    yield text
        except (errors.APIError, httpx.HTTPError) as e:
            raise _transport_error(e) from e

        if not "".join(produced).strip():
            raise MalformedResponseError("Gemini returned an empty reply")

    def history(self) -> list[dict]:
        if self._chat is None:
            return []
        messages = [{"role": "system", "content": self._instruction}]
        for content in self._chat.get_history():
            text = "".join(part.text or "" for part in (content.parts or []))
            messages.append({"role": _ROLE_NAMES.get(content.role, content.role), "content": text})
        return messages

    async def generate_evaluation(self, transcript: Sequence[Utterance], goal: SessionGoal) -> Evaluation:
        require_transcript(transcript)
        transcript_text, images = format_transcript(transcript)

        image_parts = []
        for image in images:
            decoded = split_data_url(image)
            if decoded:
                mime_type, data = decoded
                image_parts.append(types.Part.from_bytes(data=data, mime_type=mime_type))

        prompt = generate_evaluation_prompt(goal.role, transcript_text, with_images=bool(image_parts))
        contents = [types.Part.from_text(text=prompt), *image_parts]
        return await self._generate_json(contents, Evaluation, label="evaluation")

    async def generate_roadmap(self, level: Level, goal: SessionGoal) -> list[RoadmapItemDraft]:
        drafts = await self._generate_json(
            generate_roadmap_prompt(level, goal.role), list[RoadmapItemDraft], label="roadmap"
        )
        check_roadmap_shape(drafts)
        return drafts

    async def score_resume(self, resume_text: str, job_description: str) -> ResumeMatchResult:
        return await self._generate_json(
            generate_resume_score_prompt(resume_text, job_description), ResumeMatchResult, label="resume score"
        )

    async def aclose(self) -> None:
        self._chat = None

    async def _generate_json(self, contents: Any, schema: Any, label: str) -> Any:
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=contents,
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=schema,
                ),
            )
        except (errors.APIError, httpx.HTTPError) as e:
            raise _transport_error(e) from e

        text = (response.text or "").strip()
        if not text:
            raise MalformedResponseError(f"Gemini returned an empty {label} payload")
        logger.debug(f"Gemini {label} payload: {text[:200]}...")
        return parse_llm_response(text, schema)


def _transport_error(error: Exception) -> TransportError:
    status = getattr(error, "code", None)
    logger.warning(f"Gemini request failed: {error}")
    return TransportError(f"Gemini request failed: {error}", status=status if isinstance(status, int) else None)
