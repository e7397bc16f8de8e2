from typing import List
from pydantic import BaseModel

class ChunkSummary(BaseModel):
    key_points: List[str]

class SummaryResult(BaseModel):
    summary: str
    key_points: List[str]
