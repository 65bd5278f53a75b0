"""Manual digest triggers, one category for one stakeholder."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..database.base import get_db
from ..dependencies import get_digest_poller
from ..mail.digest import DigestCategory
from .digest import EmailDigestPoller

router = APIRouter(prefix="/digests", tags=["digests"])


@router.post("/{category}/send")
def send_digest_now(
    category: DigestCategory,
    email: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    poller: EmailDigestPoller = Depends(get_digest_poller),
):
    sent = poller.send_for_email(db, email, category)
    return JSONResponse({"sent": sent, "category": category.value, "email": email})
