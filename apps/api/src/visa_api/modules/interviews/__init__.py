"""
Interviews Module

Scheduling and lifecycle of applicant interviews.

API Endpoints:
- POST /interviews/{application_id} - Schedule an interview
- GET /interviews/{interview_id} - Get one interview
- GET /interviews/application/{application_id} - List for an application
- GET /interviews/officer/all - Officer's interviews
- GET /interviews/applicant/all - Applicant's interviews
- PUT /interviews/{interview_id}/reschedule - Reschedule
- PUT /interviews/{interview_id}/complete - Complete with outcome
- POST /interviews/{interview_id}/confirm - Applicant confirmation
- DELETE /interviews/{interview_id} - Cancel
"""

from .router import router

__all__ = ["router"]
