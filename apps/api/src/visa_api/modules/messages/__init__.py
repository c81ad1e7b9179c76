"""
Messages Module

Threaded conversation between an applicant and the officer handling
their application.

API Endpoints:
- POST /messages/{application_id} - Send a message
- GET /messages/application/{application_id} - Conversation, oldest first
- POST /messages/application/{application_id}/read-all - Mark received messages read
- GET /messages/unread-count - Caller's unread messages
- POST /messages/{message_id}/read - Mark one message read
- DELETE /messages/{message_id} - Delete a message the caller sent
"""

from .router import router

__all__ = ["router"]
