# main.py
import logging
from datetime import datetime
from typing import List

import fastapi
from databases import Database
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from slot_swapper.auth import get_current_user_id
from slot_swapper.config import LOG_FILE, LOG_LEVEL
from slot_swapper.data_models import RequestListing, Slot, SlotStatus, SlotView
from slot_swapper.database import create_schema, database
from slot_swapper.engine import SwapEngine
from slot_swapper.errors import InvalidArgument, SwapError
from slot_swapper.logger import setup_logging
from slot_swapper.queries import list_requests, list_swappable

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")


# Request bodies
class SlotCreate(BaseModel):
    title: str
    start_time: datetime
    end_time: datetime

class SlotStatusUpdate(BaseModel):
    status: SlotStatus

class SwapProposal(BaseModel):
    my_slot_id: str
    their_slot_id: str

class SwapDecision(BaseModel):
    accept: bool


def get_engine(request: Request) -> SwapEngine:
    return request.app.state.engine


def get_database(request: Request) -> Database:
    return request.app.state.database


# Owner-side slot endpoints
@router.get("/events", response_model=List[Slot])
async def get_my_slots(user_id: str = Depends(get_current_user_id), engine: SwapEngine = Depends(get_engine)):
    return await engine.slots.list_for_owner(user_id)

@router.post("/events", response_model=Slot, status_code=status.HTTP_201_CREATED)
async def create_slot(slot: SlotCreate, user_id: str = Depends(get_current_user_id), engine: SwapEngine = Depends(get_engine)):
    return await engine.slots.create_slot(user_id, slot.title, slot.start_time, slot.end_time)

@router.patch("/events/{slot_id}", response_model=Slot)
async def update_slot_status(
    slot_id: str,
    update: SlotStatusUpdate,
    user_id: str = Depends(get_current_user_id),
    engine: SwapEngine = Depends(get_engine),
):
    """
    Owner toggle between BUSY and SWAPPABLE. SWAP_PENDING is only ever set by the swap engine.
    """
    if update.status is SlotStatus.SWAP_PENDING:
        raise InvalidArgument("SWAP_PENDING cannot be set directly")
    return await engine.slots.set_swappable(user_id, slot_id, update.status is SlotStatus.SWAPPABLE)

@router.delete("/events/{slot_id}")
async def delete_slot(slot_id: str, user_id: str = Depends(get_current_user_id), engine: SwapEngine = Depends(get_engine)):
    await engine.slots.delete_slot(user_id, slot_id)
    return {"success": True}


# Swap endpoints
@router.get("/swappable-slots", response_model=List[SlotView])
async def get_swappable_slots(user_id: str = Depends(get_current_user_id), db: Database = Depends(get_database)):
    return await list_swappable(db, user_id)

@router.post("/swap-request", status_code=status.HTTP_201_CREATED)
async def create_swap_request(
    proposal: SwapProposal,
    user_id: str = Depends(get_current_user_id),
    engine: SwapEngine = Depends(get_engine),
):
    swap = await engine.propose_swap(user_id, proposal.my_slot_id, proposal.their_slot_id)
    return {"id": swap.id, "status": swap.status.value}

@router.post("/swap-response/{request_id}")
async def respond_to_swap_request(
    request_id: str,
    decision: SwapDecision,
    user_id: str = Depends(get_current_user_id),
    engine: SwapEngine = Depends(get_engine),
):
    await engine.respond_to_swap(user_id, request_id, decision.accept)
    return {"success": True}

@router.get("/swap-requests", response_model=RequestListing)
async def get_swap_requests(user_id: str = Depends(get_current_user_id), db: Database = Depends(get_database)):
    return await list_requests(db, user_id)


async def swap_error_handler(request: Request, exc: SwapError) -> JSONResponse:
    logger.info("%s %s refused with %s: %s", request.method, request.url.path, type(exc).__name__, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


def create_app(db: Database = database) -> fastapi.FastAPI:
    app = fastapi.FastAPI(title="SlotSwapper")
    app.state.database = db
    app.state.engine = SwapEngine(db)
    app.include_router(router)
    app.add_exception_handler(SwapError, swap_error_handler)

    @app.on_event("startup")
    async def startup():
        setup_logging(LOG_LEVEL, LOG_FILE)
        # Create tables if they don't exist
        create_schema(str(db.url))
        await db.connect()

    @app.on_event("shutdown")
    async def shutdown():
        await db.disconnect()

    return app


app = create_app()
