from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class NotificationCreate(BaseModel):
    type: str = Field(..., min_length=1, max_length=50)
    message: str = Field(..., min_length=1)
    product_id: Optional[int] = None


class NotificationRead(NotificationCreate):
    id: int
    read: bool
    actor: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
