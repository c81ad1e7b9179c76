"""
Visa Applications Module

Owns the application lifecycle: creation, completion of personal, travel
and financial details, submission with officer auto-assignment, and
officer decisions.

API Endpoints:
- POST /applications - Create (or resume) an application
- GET /applications - Caller's applications
- GET /applications/all - Staff listing with filters
- GET /applications/{id} - Application detail
- POST /applications/{id}/submit - Submit for review
- PUT /applications/{id}/status - Officer decision
- PUT|GET /applications/{id}/personal-info
- PUT|GET /applications/{id}/travel-info
- PUT /applications/{id}/financial-info
- GET|POST /applications/{id}/notes, PUT|DELETE /applications/notes/{note_id}
"""

from .router import router

__all__ = ["router"]
