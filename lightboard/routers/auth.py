"""
Authentication router — operator login and token lifecycle.

  POST /api/v1/auth/login    — exchange credentials for a token pair
  POST /api/v1/auth/refresh  — exchange a refresh token for a new pair
  POST /api/v1/auth/logout   — client-side token discard hint
  GET  /api/v1/auth/me       — current operator profile
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, EmailStr
from sqlalchemy.ext.asyncio import AsyncSession

from lightboard.core.database import get_db
from lightboard.core.limiter import limiter
from lightboard.core.logging import get_logger
from lightboard.core.security import (
    TokenPair,
    TokenPayload,
    create_token_pair,
    decode_token,
    get_current_user,
)
from lightboard.services.operator_service import (
    InvalidCredentialsError,
    authenticate_operator,
    get_operator_by_id,
)

router = APIRouter()
logger = get_logger(__name__)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class OperatorProfile(BaseModel):
    id: str
    email: str
    full_name: str
    role: str
    is_active: bool


@router.post("/login", response_model=TokenPair, summary="Authenticate an operator")
@limiter.limit("10/minute")
async def login(request: Request, body: LoginRequest, db: AsyncSession = Depends(get_db)):
    try:
        operator = await authenticate_operator(db, body.email, body.password)
    except InvalidCredentialsError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return create_token_pair(operator.id, operator.role)


@router.post("/refresh", response_model=TokenPair, summary="Rotate a token pair")
@limiter.limit("20/minute")
async def refresh_token(request: Request, body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    payload = decode_token(body.refresh_token)

    if payload.token_type != "refresh":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provided token is not a refresh token",
        )

    operator = await get_operator_by_id(db, payload.sub)
    if not operator or not operator.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Operator account is inactive or does not exist",
        )

    logger.info("auth.token_refreshed", operator_id=operator.id)
    # Role comes from the database, so role changes apply on the next refresh
    return create_token_pair(operator.id, operator.role)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, summary="Logout (client-side)")
async def logout(current_user: TokenPayload = Depends(get_current_user)):
    logger.info("auth.logout", operator_id=current_user.sub)
    return None


@router.get("/me", response_model=OperatorProfile, summary="Current operator profile")
async def get_me(
    current_user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    operator = await get_operator_by_id(db, current_user.sub)
    if not operator:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Operator not found")

    return OperatorProfile(
        id=operator.id,
        email=operator.email,
        full_name=operator.full_name,
        role=operator.role.value,
        is_active=operator.is_active,
    )
