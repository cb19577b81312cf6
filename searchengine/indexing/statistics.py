from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class IndexingResult(BaseModel):
    result: bool
    error: Optional[str] = None


class TotalStatistics(BaseModel):
    sites: int
    pages: int
    lemmas: int
    indexing: bool


class DetailedStatisticsItem(BaseModel):
    url: str
    name: str
    status: str
    status_time: Optional[datetime] = None
    error: Optional[str] = None
    pages: int = 0
    lemmas: int = 0


class StatisticsData(BaseModel):
    total: TotalStatistics
    detailed: List[DetailedStatisticsItem]


class StatisticsResponse(BaseModel):
    result: bool
    statistics: Optional[StatisticsData] = None
    error: Optional[str] = None
