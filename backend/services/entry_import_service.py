# services/entry_import_service.py - CSV import jobs
from sqlmodel import select

from core.db import get_async_session_context
from core.logger import get_logger
from core.pagination import create_page
from core.settings import settings
from models.common_models import PaginationResult
from models.db_models import EntryImportJob

logger = get_logger(__name__)

MAX_FILE_SIZE_BYTES = settings.IMPORT_MAX_FILE_SIZE_MB * 1024 * 1024

def validate_import_file(file_name: str, content: bytes) -> None:
    if not file_name:
        raise ValueError("File is required")
    if len(content) >= MAX_FILE_SIZE_BYTES:
        raise ValueError(f"File size must be less than {settings.IMPORT_MAX_FILE_SIZE_MB}MB")
    if not file_name.lower().endswith(".csv"):
        raise ValueError("File must be a CSV file")

async def create_import_job(user_id: str, file_name: str, content: bytes) -> EntryImportJob:
    """Store the upload as a pending job; processing happens in the background."""
    validate_import_file(file_name, content)

    async with get_async_session_context() as session:
        job = EntryImportJob(
            user_id=user_id,
            status="pending",
            file_name=file_name,
            file_content=content
        )
        session.add(job)
        await session.commit()
        await session.refresh(job)

        logger.info(f"Created import job {job.id} for user_id={user_id} ({file_name}, {len(content)} bytes)")
        return job

async def list_import_jobs(user_id: str, page: int, page_size: int) -> PaginationResult:
    query = (
        select(EntryImportJob)
        .where(EntryImportJob.user_id == user_id)
        .order_by(EntryImportJob.created_at_utc.desc(), EntryImportJob.id.desc())
    )

    async with get_async_session_context() as session:
        return await create_page(session, query, page, page_size)

async def get_import_job(user_id: str, job_id: str) -> EntryImportJob:
    async with get_async_session_context() as session:
        result = await session.exec(
            select(EntryImportJob).where(
                (EntryImportJob.id == job_id) & (EntryImportJob.user_id == user_id)
            )
        )
        job = result.first()

        if not job:
            raise ValueError(f"Import job {job_id} not found")

        return job
