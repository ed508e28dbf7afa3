"""
app/schemas package marker.
"""

from app.schemas.ser import (
    AnalyzeRequest,
    AnomalyListResponse,
    AnomalyResponse,
    CoefficientsResponse,
    HealthResponse,
    MonthlyDataListResponse,
    MonthlyDataResponse,
    RegressionModelResponse,
    RegressionSearchResponse,
)

__all__ = [
    "AnalyzeRequest",
    "AnomalyListResponse",
    "AnomalyResponse",
    "CoefficientsResponse",
    "HealthResponse",
    "MonthlyDataListResponse",
    "MonthlyDataResponse",
    "RegressionModelResponse",
    "RegressionSearchResponse",
]
