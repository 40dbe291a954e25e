"""
StudyNotes Backend — Assistant Proxy Routes (/api/...)
========================================================

What:  Endpoints the client's assistant features call. Each validates its
       body, forwards to the generation or speech provider and reshapes the
       result.

Contracts:
    /api/analyze-text        {text}             → {title, summary, keyTopics, wordCount}
    /api/ask-question        {question, content}→ {answer, confidence}
    /api/generate-questions  {text}             → {questions}
    /api/arcci               {input, mode}      → {reply}
    /api/tts                 {text}             → audio/mpeg bytes

The two structured endpoints fail with 502 `parse_error` when the model's
output is not the expected JSON; there is no partial result.
"""

import logging

from fastapi import APIRouter, Depends, Response

from studynotes.dependencies import get_llm, get_speech
from studynotes.schemas.ai import (
    AnalyzeTextRequest,
    AskQuestionRequest,
    GenerateQuestionsRequest,
    GenerateQuestionsResponse,
    ReverseLearnRequest,
    ReverseLearnResponse,
    SpeechRequest,
    StructuredAnswer,
    StructuredSummary,
)
from studynotes.schemas.common import ErrorResponse
from studynotes.services.llm_base import LLMService
from studynotes.services.speech_service import AUDIO_MIME_TYPE, SpeechService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Assistant"])

ERRORS = {
    400: {"description": "Missing or empty input", "model": ErrorResponse},
    502: {"description": "Provider failed or returned unusable output", "model": ErrorResponse},
}


@router.post("/analyze-text", response_model=StructuredSummary, responses=ERRORS)
async def analyze_text(
    body: AnalyzeTextRequest,
    llm: LLMService = Depends(get_llm),
) -> StructuredSummary:
    return await llm.summarize_structured(body.text)


@router.post("/ask-question", response_model=StructuredAnswer, responses=ERRORS)
async def ask_question(
    body: AskQuestionRequest,
    llm: LLMService = Depends(get_llm),
) -> StructuredAnswer:
    return await llm.answer_question_structured(body.content, body.question)


@router.post("/generate-questions", response_model=GenerateQuestionsResponse, responses=ERRORS)
async def generate_questions(
    body: GenerateQuestionsRequest,
    llm: LLMService = Depends(get_llm),
) -> GenerateQuestionsResponse:
    questions = await llm.generate_questions(body.text)
    return GenerateQuestionsResponse(questions=questions)


@router.post("/arcci", response_model=ReverseLearnResponse, responses=ERRORS, summary="Reverse learning")
async def reverse_learn(
    body: ReverseLearnRequest,
    llm: LLMService = Depends(get_llm),
) -> ReverseLearnResponse:
    reply = await llm.reverse_learn(body.input, body.mode)
    return ReverseLearnResponse(reply=reply)


@router.post(
    "/tts",
    response_class=Response,
    responses={
        **ERRORS,
        200: {"content": {AUDIO_MIME_TYPE: {}}, "description": "MP3 audio"},
    },
    summary="Text to speech",
)
async def text_to_speech(
    body: SpeechRequest,
    speech: SpeechService = Depends(get_speech),
) -> Response:
    audio = await speech.synthesize(body.text)
    return Response(
        content=audio,
        media_type=AUDIO_MIME_TYPE,
        headers={"Content-Disposition": 'inline; filename="speech.mp3"'},
    )
