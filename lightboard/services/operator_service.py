"""
Operator service — accounts and credentials for the admin dashboard.
"""

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lightboard.core.config import settings
from lightboard.core.logging import get_logger
from lightboard.core.security import Role, hash_password, verify_password
from lightboard.models.operator import Operator

logger = get_logger(__name__)

# Verified against when the email is unknown, so misses cost a bcrypt round too
_DUMMY_HASH = hash_password("lightboard-unknown-operator")


class OperatorNotFoundError(Exception):
    pass


class OperatorAlreadyExistsError(Exception):
    pass


class InvalidCredentialsError(Exception):
    pass


async def get_operator_by_id(db: AsyncSession, operator_id: str) -> Operator | None:
    return await db.get(Operator, operator_id)


async def get_operator_by_email(db: AsyncSession, email: str) -> Operator | None:
    result = await db.execute(select(Operator).where(Operator.email == email.lower().strip()))
    return result.scalar_one_or_none()


async def list_operators(db: AsyncSession, skip: int = 0, limit: int = 50) -> list[Operator]:
    result = await db.execute(
        select(Operator)
        .where(Operator.is_active == True)  # noqa: E712
        .order_by(Operator.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all())


async def create_operator(
    db: AsyncSession,
    email: str,
    password: str,
    full_name: str,
    role: Role = Role.EDITOR,
) -> Operator:
    if await get_operator_by_email(db, email):
        raise OperatorAlreadyExistsError(f"Email {email} is already registered")

    operator = Operator(
        email=email.lower().strip(),
        hashed_password=hash_password(password),
        full_name=full_name,
        role=role,
    )
    db.add(operator)
    await db.flush()

    logger.info("operator.created", operator_id=operator.id, email=operator.email, role=role.value)
    return operator


async def authenticate_operator(db: AsyncSession, email: str, password: str) -> Operator:
    """Always runs a hash check, even for unknown emails."""
    operator = await get_operator_by_email(db, email)
    password_correct = verify_password(
        password, operator.hashed_password if operator else _DUMMY_HASH
    )

    if not operator or not password_correct or not operator.is_active:
        logger.warning("auth.login_failed", email=email)
        raise InvalidCredentialsError("Invalid email or password")

    operator.last_login_at = datetime.now(timezone.utc)
    logger.info("auth.login_success", operator_id=operator.id)
    return operator


async def update_operator_role(
    db: AsyncSession, operator_id: str, new_role: Role, updated_by: str
) -> Operator:
    operator = await get_operator_by_id(db, operator_id)
    if not operator:
        raise OperatorNotFoundError(f"Operator {operator_id} not found")

    old_role = operator.role
    operator.role = new_role
    logger.info(
        "operator.role_changed",
        operator_id=operator_id,
        old_role=old_role.value,
        new_role=new_role.value,
        changed_by=updated_by,
    )
    return operator


async def deactivate_operator(db: AsyncSession, operator_id: str, deactivated_by: str) -> Operator:
    operator = await get_operator_by_id(db, operator_id)
    if not operator:
        raise OperatorNotFoundError(f"Operator {operator_id} not found")

    operator.is_active = False
    logger.warning("operator.deactivated", operator_id=operator_id, deactivated_by=deactivated_by)
    return operator


async def bootstrap_admin(db: AsyncSession) -> Operator | None:
    """Create the configured first admin if the operators table is empty."""
    if not (settings.BOOTSTRAP_ADMIN_EMAIL and settings.BOOTSTRAP_ADMIN_PASSWORD):
        return None

    count = await db.scalar(select(func.count(Operator.id)))
    if count:
        return None

    operator = await create_operator(
        db,
        email=settings.BOOTSTRAP_ADMIN_EMAIL,
        password=settings.BOOTSTRAP_ADMIN_PASSWORD,
        full_name="Administrator",
        role=Role.ADMIN,
    )
    logger.warning("operator.bootstrap_admin_created", operator_id=operator.id)
    return operator
