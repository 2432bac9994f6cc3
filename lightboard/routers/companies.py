"""
Companies router.

  GET    /companies/       → list companies, newest first
  POST   /companies/       → create a company
  DELETE /companies/{id}   → delete a company with its jobs and media
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from lightboard.core.database import get_db
from lightboard.core.limiter import get_role_limit, limiter
from lightboard.core.security import Permission, TokenPayload, require_permission
from lightboard.services.company_service import (
    CompanyNotFoundError,
    create_company,
    delete_company,
    list_companies,
)

router = APIRouter()

manage_content = require_permission(Permission.MANAGE_CONTENT)


class CompanyIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    details: str | None = None


class CompanyOut(BaseModel):
    id: str
    name: str
    details: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


@router.get("/", response_model=list[CompanyOut], summary="List companies")
@limiter.limit(get_role_limit)
async def get_companies(
    request: Request,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
):
    return await list_companies(db)


@router.post(
    "/",
    response_model=CompanyOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a company",
)
@limiter.limit(get_role_limit)
async def add_company(
    request: Request,
    body: CompanyIn,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
):
    return await create_company(db, name=body.name, details=body.details)


@router.delete("/{company_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a company")
@limiter.limit(get_role_limit)
async def remove_company(
    request: Request,
    company_id: str,
    current_user: TokenPayload = Depends(manage_content),
    db: AsyncSession = Depends(get_db),
):
    try:
        await delete_company(db, company_id, deleted_by=current_user.sub)
    except CompanyNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return None
