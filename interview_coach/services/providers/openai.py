"""
OpenAI-compatible REST provider.

Conversation state is an explicit, replayable list of role-tagged messages.
Streaming replies arrive as server-sent events which are decoded by hand.
"""
import logging
from typing import Any, AsyncIterator, Optional, Sequence

import httpx

from interview_coach.core.config import settings
from interview_coach.core.exceptions import (
    ConfigurationError,
    MalformedResponseError,
    TransportError,
    UninitializedSessionError,
)
from interview_coach.core.prompts import (
    JSON_OBJECT_ONLY,
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
)
from interview_coach.services.providers.sse import SSEDecoder

logger = logging.getLogger(__name__)


class OpenAIProvider:
    """AIProvider backed by the chat completions REST endpoint."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = None,
        api_url: str = None,
        timeout: float = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set.")
        self._api_key = api_key
        self._model = model or settings.OPENAI_MODEL
        self._api_url = api_url or settings.OPENAI_API_URL
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout or settings.REQUEST_TIMEOUT_SECONDS)
        self._messages: list[dict] = []

    @property
    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    def start_chat(self, goal: SessionGoal, interview_types: Sequence[InterviewType]) -> None:
        instruction = generate_interviewer_instruction(goal.role, interview_types)
        self._messages = [{"role": "system", "content": instruction}]
        logger.info(f"OpenAI chat started for role '{goal.role}'")

    async def stream_next_turn(self, message: str) -> AsyncIterator[str]:
        if not self._messages:
            raise UninitializedSessionError("Chat not initialized. Call start_chat first.")

        # A failed attempt must leave the history as it found it
        checkpoint = len(self._messages)
        self._messages.append({"role": "user", "content": message})
        fragments: list[str] = []
        try:
            async for delta in self._stream_completion(list(self._messages)):
                fragments.append(delta)
                yield delta
            if not "".join(fragments).strip():
                raise MalformedResponseError("OpenAI returned an empty reply")
        except BaseException:
            del self._messages[checkpoint:]
            raise

        self._messages.append({"role": "assistant", "content": "".join(fragments)})

    def history(self) -> list[dict]:
        return [dict(message) for message in self._messages]

    async def generate_evaluation(self, transcript: Sequence[Utterance], goal: SessionGoal) -> Evaluation:
        require_transcript(transcript)
        transcript_text, images = format_transcript(transcript)
        prompt = generate_evaluation_prompt(goal.role, transcript_text, with_images=bool(images))

        user_content: Any = prompt
        if images:
            user_content = [{"type": "text", "text": prompt}] + [
                {"type": "image_url", "image_url": {"url": image}} for image in images
            ]

        raw = await self._request_json([
            {"role": "system", "content": f"You are an expert interview evaluator. {JSON_OBJECT_ONLY}"},
            {"role": "user", "content": user_content},
        ])
        return parse_llm_response(raw, Evaluation)

    async def generate_roadmap(self, level: Level, goal: SessionGoal) -> list[RoadmapItemDraft]:
        raw = await self._request_json([
            {
                "role": "system",
                "content": (
                    "You are an expert career coach. Your response must be a valid JSON object "
                    "with a single key \"roadmap\" holding the array of roadmap items."
                ),
            },
            {"role": "user", "content": generate_roadmap_prompt(level, goal.role)},
        ])
        drafts = parse_llm_response(raw, list[RoadmapItemDraft], unwrap_array=True)
        check_roadmap_shape(drafts)
        return drafts

    async def score_resume(self, resume_text: str, job_description: str) -> ResumeMatchResult:
        raw = await self._request_json([
            {"role": "system", "content": f"You are an expert hiring manager. {JSON_OBJECT_ONLY}"},
            {"role": "user", "content": generate_resume_score_prompt(resume_text, job_description)},
        ])
        return parse_llm_response(raw, ResumeMatchResult)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _stream_completion(self, messages: list[dict]) -> AsyncIterator[str]:
        payload = {"model": self._model, "messages": messages, "stream": True}
        try:
            async with self._client.stream("POST", self._api_url, json=payload, headers=self._headers) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise TransportError(
                        f"OpenAI API error {response.status_code}: {body[:200]}",
                        status=response.status_code,
                    )

                decoder = SSEDecoder()
                async for chunk in response.aiter_text():
                    for delta in decoder.feed(chunk):
                        yield delta
                    if decoder.done:
                        break
                for delta in decoder.flush():
                    yield delta
        except httpx.HTTPError as e:
            logger.warning(f"OpenAI stream failed: {e}")
            raise TransportError(f"OpenAI stream failed: {e}") from e

    async def _request_json(self, messages: list[dict]) -> str:
        payload = {
            "model": self._model,
            "messages": messages,
            "response_format": {"type": "json_object"},
        }
        try:
            response = await self._client.post(self._api_url, json=payload, headers=self._headers)
        except httpx.HTTPError as e:
            logger.warning(f"OpenAI request failed: {e}")
            raise TransportError(f"OpenAI request failed: {e}") from e

        if response.status_code >= 400:
            raise TransportError(
                f"OpenAI API error {response.status_code}: {response.text[:200]}",
                status=response.status_code,
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError("OpenAI response is missing message content") from e
        if not isinstance(content, str) or not content.strip():
            raise MalformedResponseError("OpenAI returned an empty structured payload")
        return content
