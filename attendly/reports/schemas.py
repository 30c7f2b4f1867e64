"""Report Pydantic schemas."""

from pydantic import BaseModel


class CountByLabel(BaseModel):
    label: str
    count: int


class LeaveStatisticsOut(BaseModel):
    by_status: list[CountByLabel]
    by_type: list[CountByLabel]
    top_users: list[CountByLabel]
