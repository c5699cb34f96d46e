from datetime import datetime

from pydantic import BaseModel, Field


class StoredFile(BaseModel):
    name: str
    size: int = Field(ge=0)
    modified: datetime
