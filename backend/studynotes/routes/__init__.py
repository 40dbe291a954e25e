# Routes package init
"""
StudyNotes Backend — API Routes Package
=========================================

Route Inventory:
    - notes.py:            /notes, /notes/from-text, /notes/{id}, /notes/{id}/questions
    - ai.py:               /summarize, /ask, /upload-pdf
    - study_materials.py:  /upload-study-material, /study-materials, /download, /uploads
    - assistant.py:        /api/analyze-text, /api/ask-question, /api/generate-questions,
                           /api/arcci, /api/tts
    - profile.py:          /api/profile/...
    - health.py:           /health

Routes stay thin: read the request, call one service, shape the response.
Errors are raised as StudyNotesError subclasses and rendered by the global
handlers in main.py.
"""
