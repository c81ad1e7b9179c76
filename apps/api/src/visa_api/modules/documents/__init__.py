"""
Documents Module

Document upload and verification, and the officer-initiated document
request workflow.

API Endpoints:
- POST /documents/{application_id} - Upload (or replace) a document
- GET /documents/{application_id} - List an application's documents
- PUT /documents/{document_id}/verify - Officer verification decision
- POST /document-requests/{application_id} - Request an additional document
- GET /document-requests/application/{application_id} - List requests
- GET /document-requests/{request_id} - Get one request
- PUT /document-requests/{request_id} - Edit an open request
- DELETE /document-requests/{request_id} - Cancel an open request
- POST /document-requests/{request_id}/submit - Answer a request
"""

from .request_router import router as request_router
from .router import router

__all__ = ["request_router", "router"]
