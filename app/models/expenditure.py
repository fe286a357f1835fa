"""Committee outflows."""
from datetime import datetime
from typing import Optional

from beanie import Document
from pydantic import BaseModel, Field


class Expenditure(Document):
    description: str
    amount: float
    date: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "expenditures"


class ExpenditureCreate(BaseModel):
    description: str = Field(min_length=1)
    amount: float = Field(gt=0)
    date: Optional[datetime] = None
