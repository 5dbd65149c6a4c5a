# models/import_models.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from models.common_models import LinkDto
from models.db_models import EntryImportJob

EntryImportStatus = Literal["pending", "processing", "completed", "failed"]

class EntryImportJobDto(BaseModel):
    id: str
    user_id: str
    status: EntryImportStatus
    file_name: str
    total_records: int
    processed_records: int
    successful_records: int
    failed_records: int
    errors: List[str] = Field(default_factory=list)
    created_at_utc: datetime
    completed_at_utc: Optional[datetime] = None
    links: List[LinkDto] = Field(default_factory=list)

    @classmethod
    def from_job(cls, job: EntryImportJob) -> "EntryImportJobDto":
        return cls(
            id=job.id,
            user_id=job.user_id,
            status=job.status,
            file_name=job.file_name,
            total_records=job.total_records,
            processed_records=job.processed_records,
            successful_records=job.successful_records,
            failed_records=job.failed_records,
            errors=list(job.errors or []),
            created_at_utc=job.created_at_utc,
            completed_at_utc=job.completed_at_utc
        )
