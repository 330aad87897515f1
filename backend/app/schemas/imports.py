from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel


class CsvImportRequest(BaseModel):
    file: Optional[str] = None
    mapping: Optional[Dict[str, Optional[str]]] = None


class ImportRowSuccess(BaseModel):
    row: int
    transaction_id: int


class ImportRowFailure(BaseModel):
    row: int
    error: str


class ImportRowResults(BaseModel):
    success: List[ImportRowSuccess]
    failed: List[ImportRowFailure]


class ImportSummary(BaseModel):
    batch_id: int
    total_rows: int
    success_rows: int
    failed_rows: int
    status: str
    categories_created: int
    results: ImportRowResults


class ImportBatchOut(BaseModel):
    id: int
    source: str
    source_filename: Optional[str]
    total_rows: int
    success_rows: int
    failed_rows: int
    status: str
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    error_message: Optional[str]
