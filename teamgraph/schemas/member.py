from pydantic import BaseModel
from typing import Any


class PropertyValueOut(BaseModel):
    member_id: int
    property: str
    value: Any
