# Services package init
"""
StudyNotes Backend — Services Layer
=====================================

What:  Business logic between routes (HTTP) and the DocumentStore (persistence).
How:   Services are constructed once in the application lifespan, stored on
       app.state, and handed to routes through FastAPI dependencies.

Service Inventory:
    - LLMService (abstract): generation gateway (summaries, Q&A, questions, titles)
    - OpenRouterService / GeminiService: concrete generation providers
    - SpeechService (abstract) / ElevenLabsService: text-to-speech
    - TextExtractor: PDF parsing and image OCR
    - FileService: upload validation, binary storage and removal
    - IngestionPipeline: extract → summarize → (title) → persist
    - NoteService / StudyMaterialService / ProfileService: record operations
"""
