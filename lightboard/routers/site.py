"""
Site settings router — the traffic light and the proof stats.

  GET  /traffic-light      → current state (public)
  PUT  /traffic-light      → change state, pushed to every open socket
  WS   /traffic-light/ws   → current state on connect, then every change
  GET  /proof-stats        → red-phase headline numbers (public)
  PUT  /proof-stats        → update them
"""

import asyncio
from datetime import datetime

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from lightboard.core.broadcast import traffic_light_channel
from lightboard.core.database import AsyncSessionLocal, get_db
from lightboard.core.limiter import get_role_limit, limiter
from lightboard.core.logging import get_logger
from lightboard.core.security import Permission, TokenPayload, require_permission
from lightboard.models.content import LightState
from lightboard.services.site_service import (
    get_light_state,
    get_proof_stats,
    set_light_state,
    update_proof_stats,
)

router = APIRouter()
logger = get_logger(__name__)


class TrafficLightOut(BaseModel):
    state: LightState


class TrafficLightIn(BaseModel):
    state: LightState


class ProofStatsBody(BaseModel):
    total_companies: int = Field(default=0, ge=0)
    total_applications: int = Field(default=0, ge=0)
    total_interviews: int = Field(default=0, ge=0)


class ProofStatsOut(ProofStatsBody):
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


@router.get("/traffic-light", response_model=TrafficLightOut, summary="Current traffic light state")
async def read_traffic_light(db: AsyncSession = Depends(get_db)):
    return TrafficLightOut(state=await get_light_state(db))


@router.put("/traffic-light", response_model=TrafficLightOut, summary="Change the traffic light")
@limiter.limit(get_role_limit)
async def write_traffic_light(
    request: Request,
    body: TrafficLightIn,
    current_user: TokenPayload = Depends(require_permission(Permission.SET_TRAFFIC_LIGHT)),
    db: AsyncSession = Depends(get_db),
):
    state = await set_light_state(db, body.state, changed_by=current_user.sub)
    return TrafficLightOut(state=state)


async def _wait_for_disconnect(ws: WebSocket) -> None:
    try:
        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        return


@router.websocket("/traffic-light/ws")
async def traffic_light_ws(ws: WebSocket):
    await ws.accept()
    # Subscribe before reading so a change in between is not lost
    async with traffic_light_channel.subscribe() as sub:
        async with AsyncSessionLocal() as db:
            state = await get_light_state(db)
        await ws.send_json({"state": state.value})

        disconnected = asyncio.create_task(_wait_for_disconnect(ws))
        try:
            while True:
                update = asyncio.create_task(sub.get())
                done, _ = await asyncio.wait(
                    {update, disconnected}, return_when=asyncio.FIRST_COMPLETED
                )
                if disconnected in done:
                    update.cancel()
                    break
                await ws.send_json({"state": update.result()})
        except WebSocketDisconnect:
            pass
        finally:
            disconnected.cancel()

    logger.debug("traffic_light.socket_closed")


@router.get("/proof-stats", response_model=ProofStatsOut, summary="Proof stats")
async def read_proof_stats(db: AsyncSession = Depends(get_db)):
    return await get_proof_stats(db)


@router.put("/proof-stats", response_model=ProofStatsOut, summary="Update proof stats")
@limiter.limit(get_role_limit)
async def write_proof_stats(
    request: Request,
    body: ProofStatsBody,
    current_user: TokenPayload = Depends(require_permission(Permission.MANAGE_CONTENT)),
    db: AsyncSession = Depends(get_db),
):
    return await update_proof_stats(db, **body.model_dump(), updated_by=current_user.sub)
