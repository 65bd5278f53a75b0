"""Chat routes: message append, receipts, history sync and the live event socket."""

import logging

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..config import settings
from ..database.base import get_db
from ..dependencies import get_current_stakeholder, get_events
from ..errors import Forbidden
from ..rate_limit import limiter
from ..stakeholders.schemas import StakeholderIdentity
from .events import EventPublisher
from .schemas import AppendMessageRequest, ListSinceRequest, ReceiptRequest
from .service import (
    append_message,
    donation_history,
    list_since,
    mark_delivered,
    mark_read,
    require_participant,
    serialize_message,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])
ws_router = APIRouter(tags=["chat"])


@router.post("/append")
@limiter.limit(settings.rate_limit_chat)
def append(
    request: Request,
    body: AppendMessageRequest,
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    if body.sender_id and body.sender_id != user.id:
        raise Forbidden("Cannot send messages on behalf of another stakeholder")
    if body.donation_id:
        require_participant(db, body.donation_id, user.id)
    message = append_message(db, body.donation_id, body.sender_id, body.payload, body.iv)
    return JSONResponse(serialize_message(message))


@router.post("/markRead")
def read_receipts(
    body: ReceiptRequest,
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
    events: EventPublisher = Depends(get_events),
):
    require_participant(db, body.donation_id, user.id)
    updated = mark_read(db, body.donation_id, user.id, events)
    return JSONResponse({"success": True, "updated": [serialize_message(m) for m in updated]})


@router.post("/markDelivered")
def delivery_receipts(
    body: ReceiptRequest,
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
    events: EventPublisher = Depends(get_events),
):
    require_participant(db, body.donation_id, user.id)
    updated = mark_delivered(db, body.donation_id, user.id, events)
    return JSONResponse({"success": True, "updated": [serialize_message(m) for m in updated]})


@router.post("/listSince")
def messages_since(
    body: ListSinceRequest,
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    return JSONResponse(list_since(db, user.id, body.since))


@router.get("/history/{donation_id}")
def history(
    donation_id: int,
    db: Session = Depends(get_db),
    user: StakeholderIdentity = Depends(get_current_stakeholder),
):
    return JSONResponse({"messages": donation_history(db, donation_id, user.id)})


@ws_router.websocket("/ws/events")
async def live_events(websocket: WebSocket):
    publisher = websocket.app.state.events
    await websocket.accept()
    subscription = publisher.subscribe()
    try:
        while True:
            event = await subscription.queue.get()
            await websocket.send_json(event)
    except WebSocketDisconnect:
        logger.debug("Live event subscriber disconnected")
    finally:
        publisher.unsubscribe(subscription)
