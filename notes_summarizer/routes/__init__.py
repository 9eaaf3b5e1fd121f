# Routes package init
"""
Notes Summarizer - API Routes Package
=======================================

Route Inventory:
    - summarize.py: POST   /api/summarize              (pasted text)
    - notes.py:     POST   /api/notes/upload           (document upload)
                    GET    /api/notes/capabilities     (supported formats)
    - history.py:   GET    /api/history                (paginated list)
                    GET    /api/history/stats          (aggregates)
                    GET    /api/history/{id}
                    PUT    /api/history/{id}
                    DELETE /api/history/{id}
                    DELETE /api/history                (bulk)
    - auth.py:      POST   /api/auth/verify            (Google/Facebook sign-in)
                    POST   /api/auth/guest             (guest session)
                    POST   /api/auth/logout
                    GET    /api/auth/me
    - health.py:    GET    /health

Routes are thin: read the request, call a service, wrap the result in the
response envelope.
"""
