"""
StudyNotes Backend — Abstract Generation Gateway
==================================================

What:  The contract every generation provider implements, plus the domain
       operations (summaries, Q&A, exam questions, reverse learning, titles)
       built on top of a single primitive: `complete(prompt, system)`.
Why:   Providers differ only in how one prompt is sent and how the first
       choice's text comes back. Prompt selection, input validation and JSON
       parsing are shared, so swapping providers (or a fake in tests) cannot
       change observable behavior.
How:   Concrete classes implement complete() and health_check(); everything
       else lives here.
Who:   IngestionPipeline and the generation routes.

Error contract:
    ValidationError → empty input or unknown mode, raised before any call
    UpstreamError   → provider unreachable, non-2xx, malformed or empty body
    ParseError      → structured operation got text that is not the expected JSON
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from studynotes.exceptions import ParseError, UpstreamError, ValidationError
from studynotes.schemas.ai import StructuredAnswer, StructuredSummary
from studynotes.services import prompts

logger = logging.getLogger(__name__)

REVERSE_LEARN_MODES = tuple(prompts.REVERSE_LEARN)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def clean_title(raw: str, max_length: int = 80) -> str:
    """
    Normalize a model-suggested title.

    Drops quotes and digits, trailing punctuation and surrounding whitespace.
    Returns "" when nothing usable is left; callers pick their own fallback.
    """
    title = raw.strip().splitlines()[0] if raw.strip() else ""
    title = re.sub(r"[\"'`*#\d]", "", title)
    title = re.sub(r"^\s*title\s*:\s*", "", title, flags=re.IGNORECASE)
    title = re.sub(r"\s+", " ", title).strip(" .:;,-")
    return title[:max_length].strip()


def parse_json_object(raw: str, operation: str) -> Any:
    """
    Parse model output that is supposed to be a JSON document.

    Models often wrap JSON in a ```json fence; the fence is removed first.
    """
    text = raw.strip()
    match = _CODE_FENCE.match(text)
    if match:
        text = match.group(1)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("%s: model output is not valid JSON (%s)", operation, e.msg)
        raise ParseError(
            raw_output=raw,
            context={"operation": operation, "error": e.msg},
        )


class LLMService(ABC):
    """
    Abstract interface for text-generation providers.

    Contract:
        - complete() sends one prompt and returns the first choice's text
        - Implementations handle their own timeout and retry policy and
          translate every provider failure into UpstreamError
        - Callers never need to know which provider is in use

    Implementations:
        - OpenRouterService: OpenAI-compatible chat completions over httpx
        - GeminiService: Google Generative AI SDK
    """

    provider_name: str = "llm"

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system: str = prompts.DEFAULT_SYSTEM,
        *,
        operation: str = "complete",
    ) -> str:
        """
        Send one prompt and return the generated text.

        Args:
            prompt:    User message
            system:    System instruction
            operation: Domain operation name, used for logging only

        Raises:
            UpstreamError: Provider unreachable, timed out (after retries),
                answered non-2xx, or returned a malformed body.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check whether the provider is reachable without spending tokens.

        Returns: True if reachable and authenticated, False otherwise.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources. Called once at shutdown."""
        return None

    # ── Helpers ───────────────────────────────────────────────────────────

    @staticmethod
    def _require_text(value: Optional[str], field: str) -> str:
        if value is None or not value.strip():
            raise ValidationError(message=f"'{field}' must not be empty", field=field)
        return value

    async def _generate(self, prompt: str, system: str, operation: str) -> str:
        text = await self.complete(prompt, system, operation=operation)
        if not text or not text.strip():
            raise UpstreamError(
                message="The AI service returned an empty response.",
                provider=self.provider_name,
                context={"operation": operation},
            )
        return text.strip()

    # ── Domain operations ─────────────────────────────────────────────────

    async def summarize_text(self, text: str, document: bool = False) -> str:
        """
        Plain-text summary with numbered sections and no markup symbols.

        Args:
            document: Use the document format (heading line per section), as
                      for extracted PDF/image text; otherwise the notes format.
        """
        self._require_text(text, "text")
        template = prompts.SUMMARIZE_DOCUMENT if document else prompts.SUMMARIZE_NOTES
        return await self._generate(
            template.format(text=text), prompts.DEFAULT_SYSTEM, "summarize_text"
        )

    async def summarize_structured(self, text: str) -> StructuredSummary:
        """
        Title, summary, key topics and word count as validated JSON.

        Raises:
            ParseError: Output is not JSON, or lacks/misstypes a field
        """
        self._require_text(text, "text")
        raw = await self._generate(
            prompts.STRUCTURED_SUMMARY_USER.format(text=text),
            prompts.STRUCTURED_SUMMARY_SYSTEM,
            "summarize_structured",
        )
        data = parse_json_object(raw, "summarize_structured")
        try:
            return StructuredSummary.model_validate(data)
        except PydanticValidationError as e:
            raise ParseError(
                message="The AI service returned a summary in an unexpected shape.",
                raw_output=raw,
                context={"operation": "summarize_structured", "errors": e.error_count()},
            )

    async def answer_question(self, notes: str, question: str) -> str:
        """Free-text answer grounded in `notes`."""
        self._require_text(notes, "notes")
        self._require_text(question, "question")
        return await self._generate(
            prompts.ANSWER_USER.format(notes=notes, question=question),
            prompts.ANSWER_SYSTEM,
            "answer_question",
        )

    async def answer_question_structured(self, content: str, question: str) -> StructuredAnswer:
        """
        Answer as `{answer, confidence}` JSON; confidence is high, medium or low.

        Raises:
            ParseError: Output is not that JSON object
        """
        self._require_text(content, "content")
        self._require_text(question, "question")
        raw = await self._generate(
            prompts.STRUCTURED_ANSWER_USER.format(content=content, question=question),
            prompts.STRUCTURED_ANSWER_SYSTEM,
            "answer_question_structured",
        )
        data = parse_json_object(raw, "answer_question_structured")
        if isinstance(data, dict) and isinstance(data.get("confidence"), str):
            data["confidence"] = data["confidence"].strip().lower()
        try:
            return StructuredAnswer.model_validate(data)
        except PydanticValidationError as e:
            raise ParseError(
                message="The AI service returned an answer in an unexpected shape.",
                raw_output=raw,
                context={"operation": "answer_question_structured", "errors": e.error_count()},
            )

    async def generate_questions(self, text: str) -> str:
        """Five numbered exam questions as plain text."""
        self._require_text(text, "text")
        return await self._generate(
            prompts.GENERATE_QUESTIONS.format(text=text),
            prompts.DEFAULT_SYSTEM,
            "generate_questions",
        )

    async def reverse_learn(self, text: str, mode: str) -> str:
        """
        Work backward from a concept, answer or explanation.

        Raises:
            ValidationError: `mode` is not concept, question or explanation
        """
        template = prompts.REVERSE_LEARN.get(mode)
        if template is None:
            raise ValidationError(
                message=f"Invalid mode '{mode}'. Must be one of: {', '.join(REVERSE_LEARN_MODES)}",
                field="mode",
                context={"allowed": list(REVERSE_LEARN_MODES)},
            )
        self._require_text(text, "input")
        return await self._generate(
            template.format(text=text), prompts.DEFAULT_SYSTEM, "reverse_learn"
        )

    async def suggest_title(self, text: str) -> str:
        """
        Short (2-3 word) title for a study material.

        Returns "" when the model's answer has nothing usable after cleaning.
        """
        self._require_text(text, "text")
        raw = await self._generate(
            prompts.SUGGEST_TITLE.format(text=text), prompts.TITLE_SYSTEM, "suggest_title"
        )
        return clean_title(raw)
