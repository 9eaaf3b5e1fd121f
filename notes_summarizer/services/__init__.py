# Services package init
"""
Notes Summarizer - Services Layer
===================================

Service Inventory:
    - validation:      Input Validator (pasted text and uploaded files)
    - text_extractor:  Text Extractor (PDF, DOCX, OCR for images)
    - llm_base:        Summarizer interface and reply parsing
    - gemini_service:  Gemini-backed Summarizer
    - history_service: History Store (owner-scoped SummaryRecord CRUD + stats)
    - auth_service:    Tokens, provider verification, identity resolution
    - user_service:    User profile upsert on sign-in
    - summary_service: Pipeline orchestration for the summarize/upload routes

Routes stay thin; every rule lives here so it can be tested without HTTP.
"""
