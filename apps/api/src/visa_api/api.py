from fastapi import APIRouter

from visa_api.modules.applications import router as applications_router
from visa_api.modules.auth import router as auth_router
from visa_api.modules.documents import request_router as document_requests_router
from visa_api.modules.documents import router as documents_router
from visa_api.modules.interviews import router as interviews_router
from visa_api.modules.messages import router as messages_router
from visa_api.modules.notifications import router as notifications_router
from visa_api.modules.payments import router as payments_router
from visa_api.modules.users.router import router as users_router
from visa_api.modules.visa_types import router as visa_types_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])
api_router.include_router(visa_types_router, prefix="/visa-types", tags=["Visa Types"])
api_router.include_router(applications_router, prefix="/applications", tags=["Applications"])
api_router.include_router(documents_router, prefix="/documents", tags=["Documents"])
api_router.include_router(
    document_requests_router,
    prefix="/document-requests",
    tags=["Document Requests"],
)
api_router.include_router(interviews_router, prefix="/interviews", tags=["Interviews"])
api_router.include_router(payments_router, prefix="/payments", tags=["Payments"])
api_router.include_router(notifications_router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(messages_router, prefix="/messages", tags=["Messages"])
api_router.include_router(users_router, prefix="/users", tags=["Users"])
