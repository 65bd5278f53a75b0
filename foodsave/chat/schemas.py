"""Chat request schemas. Every body carries the caller's ``email``."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field, field_validator


class ChatRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)


class AppendMessageRequest(ChatRequest):
    donation_id: int | None = None
    sender_id: str | None = Field(None, max_length=32)
    payload: str | None = Field(None, max_length=20_000)
    iv: str | None = Field(None, max_length=64)

    # Accepted for compatibility with older clients; the server clock is used instead
    message_timestamp: str | None = None


class ReceiptRequest(ChatRequest):
    donation_id: int


class ListSinceRequest(ChatRequest):
    since: datetime | None = None

    @field_validator("since")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
