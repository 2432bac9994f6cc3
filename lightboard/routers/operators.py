"""
Operators router — dashboard account management (admin only).

  GET    /operators/            → list active operators
  POST   /operators/            → create an operator
  PUT    /operators/{id}/role   → change role
  DELETE /operators/{id}        → deactivate (never yourself)
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from lightboard.core.database import get_db
from lightboard.core.limiter import get_role_limit, limiter
from lightboard.core.security import Permission, Role, TokenPayload, require_permission
from lightboard.models.operator import Operator
from lightboard.services.operator_service import (
    OperatorAlreadyExistsError,
    OperatorNotFoundError,
    create_operator,
    deactivate_operator,
    list_operators,
    update_operator_role,
)

router = APIRouter()

manage_operators = require_permission(Permission.MANAGE_OPERATORS)


class OperatorSummary(BaseModel):
    id: str
    email: str
    full_name: str
    role: str
    is_active: bool


class CreateOperatorRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: str = Field(..., min_length=2, max_length=150)
    role: Role = Role.EDITOR

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if not any(c.isupper() for c in v):
            raise ValueError("Password must contain at least one uppercase letter")
        if not any(c.isdigit() for c in v):
            raise ValueError("Password must contain at least one digit")
        return v


class UpdateRoleRequest(BaseModel):
    role: Role


def _summary(operator: Operator) -> OperatorSummary:
    return OperatorSummary(
        id=operator.id,
        email=operator.email,
        full_name=operator.full_name,
        role=operator.role.value,
        is_active=operator.is_active,
    )


@router.get("/", response_model=list[OperatorSummary], summary="List operators")
@limiter.limit(get_role_limit)
async def get_operators(
    request: Request,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    current_user: TokenPayload = Depends(manage_operators),
    db: AsyncSession = Depends(get_db),
):
    return [_summary(o) for o in await list_operators(db, skip=skip, limit=limit)]


@router.post(
    "/",
    response_model=OperatorSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Create an operator",
)
@limiter.limit(get_role_limit)
async def add_operator(
    request: Request,
    body: CreateOperatorRequest,
    current_user: TokenPayload = Depends(manage_operators),
    db: AsyncSession = Depends(get_db),
):
    try:
        operator = await create_operator(
            db, email=body.email, password=body.password, full_name=body.full_name, role=body.role
        )
    except OperatorAlreadyExistsError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An operator with this email already exists",
        )
    return _summary(operator)


@router.put("/{operator_id}/role", response_model=OperatorSummary, summary="Change an operator's role")
@limiter.limit(get_role_limit)
async def change_role(
    request: Request,
    operator_id: str,
    body: UpdateRoleRequest,
    current_user: TokenPayload = Depends(manage_operators),
    db: AsyncSession = Depends(get_db),
):
    try:
        operator = await update_operator_role(db, operator_id, body.role, updated_by=current_user.sub)
    except OperatorNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Operator not found")
    return _summary(operator)


@router.delete("/{operator_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Deactivate an operator")
@limiter.limit(get_role_limit)
async def remove_operator(
    request: Request,
    operator_id: str,
    current_user: TokenPayload = Depends(manage_operators),
    db: AsyncSession = Depends(get_db),
):
    if current_user.sub == operator_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot deactivate your own account",
        )

    try:
        await deactivate_operator(db, operator_id, deactivated_by=current_user.sub)
    except OperatorNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Operator not found")
    return None
