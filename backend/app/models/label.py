"""
Label-related Pydantic models.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal


class Label(BaseModel):
    """Gmail label as shown in the label picker."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    type: Literal["system", "user"]
    display_name: str = Field(alias="displayName")
