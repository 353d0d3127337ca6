import uuid
from datetime import date, datetime
from typing import Any, Dict, Literal
from pydantic import BaseModel, ConfigDict, model_validator

ReportType = Literal['sales', 'production', 'customer', 'financial']


class ReportRequest(BaseModel):
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _check_range(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class Report(BaseModel):
    id: uuid.UUID
    title: str
    report_type: str
    report_format: str
    start_date: date | None = None
    end_date: date | None = None
    file_path: str | None = None
    file_size: int | None = None
    created_by: uuid.UUID | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ReportPreview(BaseModel):
    report_type: str
    start_date: date
    end_date: date
    data: Dict[str, Any]


class GeneratedReport(BaseModel):
    report: Report
    data: Dict[str, Any]
