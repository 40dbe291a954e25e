"""
StudyNotes Backend — Generation Request/Response Schemas
==========================================================

What:  Bodies of the summarization, Q&A, question-generation, reverse-learning
       and text-to-speech endpoints.
Why:   Required fields are declared here so FastAPI rejects missing keys before
       a route runs; emptiness of present fields is checked by the gateway so
       that whitespace-only text never reaches a provider.
"""

from typing import List, Literal

from pydantic import BaseModel, Field

from studynotes.schemas.common import CamelModel

Confidence = Literal["high", "medium", "low"]


# ── Backend routes (/summarize, /ask) ────────────────────────────────────


class SummarizeRequest(BaseModel):
    notes: str = Field(description="Notes text to summarize")


class SummarizeResponse(BaseModel):
    summary: str


class AskRequest(BaseModel):
    notes: str = Field(description="Notes the answer must be based on")
    question: str


class AskResponse(BaseModel):
    answer: str


# ── Client proxy routes (/api/...) ───────────────────────────────────────


class AnalyzeTextRequest(BaseModel):
    text: str


class StructuredSummary(CamelModel):
    """
    Output of summarizeStructured.

    Wire shape: {"title", "summary", "keyTopics", "wordCount"}.
    """
    title: str
    summary: str
    key_topics: List[str] = Field(default_factory=list)
    word_count: int = Field(ge=0)


class AskQuestionRequest(BaseModel):
    question: str
    content: str


class StructuredAnswer(BaseModel):
    """Output of the strict-JSON question answering operation."""
    answer: str
    confidence: Confidence


class GenerateQuestionsRequest(BaseModel):
    text: str


class GenerateQuestionsResponse(BaseModel):
    questions: str = Field(description="Numbered list of five questions, plain text")


class ReverseLearnRequest(BaseModel):
    input: str
    # Plain str so an unknown mode reaches the gateway and fails as InvalidInput (400)
    mode: str


class ReverseLearnResponse(BaseModel):
    reply: str


class SpeechRequest(BaseModel):
    text: str
