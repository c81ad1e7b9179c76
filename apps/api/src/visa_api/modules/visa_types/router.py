"""
Visa Types Router

Endpoints:
- GET /visa-types - Active visa types (public)
- GET /visa-types/{id} - One visa type (public)
- POST /visa-types - Create a visa type (admin)
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.core.auth import require_admin
from visa_api.core.database import get_db
from visa_api.modules.shared import ApiResponse, ok
from visa_api.modules.visa_types import service
from visa_api.modules.visa_types.schemas import VisaTypeCreate, VisaTypeResponse

router = APIRouter()


@router.get("", response_model=ApiResponse[list[VisaTypeResponse]])
async def list_visa_types(db: AsyncSession = Depends(get_db)):
    visa_types = await service.list_visa_types(db)
    return ok([VisaTypeResponse.model_validate(v) for v in visa_types], "Visa types retrieved")


@router.get("/{visa_type_id}", response_model=ApiResponse[VisaTypeResponse])
async def get_visa_type(visa_type_id: UUID, db: AsyncSession = Depends(get_db)):
    visa_type = await service.get_visa_type(db, visa_type_id)
    return ok(VisaTypeResponse.model_validate(visa_type), "Visa type retrieved")


@router.post(
    "",
    response_model=ApiResponse[VisaTypeResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_visa_type(data: VisaTypeCreate, db: AsyncSession = Depends(get_db)):
    visa_type = await service.create_visa_type(db, data)
    return ok(VisaTypeResponse.model_validate(visa_type), "Visa type created")
