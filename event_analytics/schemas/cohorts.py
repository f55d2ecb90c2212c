from pydantic import BaseModel, ConfigDict
from typing import Optional


class CohortUpdate(BaseModel):
    """
    Partial cohort assignment. Only fields that were explicitly set are
    merged into the stored row; a missing subject is left for the database
    NOT NULL constraint to reject.
    """
    model_config = ConfigDict(extra="forbid")

    subject: Optional[str] = None
    cohort: Optional[str] = None
    state: Optional[str] = None


class CohortRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    campaign: str
    subject: str
    cohort: Optional[str] = None
    state: Optional[str] = None


class CohortStateCount(BaseModel):
    cohort: Optional[str] = None
    state: Optional[str] = None
    count: int
