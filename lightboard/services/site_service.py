"""
Site-wide single-row settings: the traffic light and the proof stats.

Both tables hold at most one row; reads create nothing, and the first write
inserts the row.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lightboard.core.broadcast import Channel, traffic_light_channel
from lightboard.core.logging import get_logger
from lightboard.models.content import LightState, ProofStats, TrafficLight

logger = get_logger(__name__)


# ── Traffic light ──────────────────────────────────────────────────────────────
async def _traffic_light_row(db: AsyncSession) -> TrafficLight | None:
    result = await db.execute(select(TrafficLight).limit(1))
    return result.scalar_one_or_none()


async def get_light_state(db: AsyncSession) -> LightState:
    row = await _traffic_light_row(db)
    return row.state if row else LightState.RED


async def set_light_state(
    db: AsyncSession,
    new_state: LightState,
    changed_by: str,
    channel: Channel = traffic_light_channel,
) -> LightState:
    """
    Persist the new state, then push it to live subscribers.

    Commits before publishing: a state that fails to save is never broadcast.
    """
    row = await _traffic_light_row(db)
    old_state = row.state if row else LightState.RED
    if row is None:
        db.add(TrafficLight(state=new_state))
    else:
        row.state = new_state
    await db.commit()

    logger.info(
        "traffic_light.changed",
        old_state=old_state.value,
        new_state=new_state.value,
        changed_by=changed_by,
    )
    channel.publish(new_state.value)
    return new_state


# ── Proof stats ────────────────────────────────────────────────────────────────
async def get_proof_stats(db: AsyncSession) -> ProofStats:
    result = await db.execute(select(ProofStats).limit(1))
    row = result.scalar_one_or_none()
    return row or ProofStats(total_companies=0, total_applications=0, total_interviews=0)


async def update_proof_stats(
    db: AsyncSession,
    total_companies: int,
    total_applications: int,
    total_interviews: int,
    updated_by: str,
) -> ProofStats:
    result = await db.execute(select(ProofStats).limit(1))
    row = result.scalar_one_or_none()
    if row is None:
        row = ProofStats()
        db.add(row)

    row.total_companies = total_companies
    row.total_applications = total_applications
    row.total_interviews = total_interviews
    await db.flush()

    logger.info(
        "proof_stats.updated",
        total_companies=total_companies,
        total_applications=total_applications,
        total_interviews=total_interviews,
        updated_by=updated_by,
    )
    return row
