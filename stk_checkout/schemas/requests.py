from pydantic import BaseModel, field_validator
from typing import Any, List, Optional


class LineItem(BaseModel):
    id: str
    name: Optional[str] = None
    price: Optional[float] = None
    quantity: int = 1

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class StkPushRequest(BaseModel):
    # All optional: missing or bad values are reported by the initiator, not as a 422
    phone: Optional[str] = None
    amount: Optional[Any] = None
    items: Optional[List[LineItem]] = None

    @field_validator("phone", mode="before")
    @classmethod
    def coerce_phone(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v
