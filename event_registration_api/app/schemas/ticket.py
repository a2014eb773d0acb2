"""Pydantic models for registration tickets."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class TicketRead(BaseModel):
    id: int
    registration_id: int
    event_id: int
    visitor_id: int
    ticket_code: str
    issued_at: datetime
    is_checked_in: bool = False
    checked_in_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }
