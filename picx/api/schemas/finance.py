"""
Finance statistics schemas.
"""

from pydantic import BaseModel, Field


class MonthlyStatistic(BaseModel):
    month: str = Field(..., description="YYYY-MM")
    income: float = Field(..., description="Total sales")
    expense: float = Field(..., description="Total commission")


class GenerateReportsRequest(BaseModel):
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)


class GenerateReportsResponse(BaseModel):
    message: str
    reports_generated: int
