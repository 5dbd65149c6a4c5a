# api/entry_imports.py
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, Path, UploadFile

from core.job import process_entry_import_job
from core.links import LinkService, get_link_service
from core.logger import get_logger
from core.media_types import AcceptHeader, get_accept_header
from core.plugin import get_pagination_params
from core.security import get_current_user_id
from models.common_models import LinkDto
from models.import_models import EntryImportJobDto
from services.entry_import_service import create_import_job, get_import_job, list_import_jobs

router = APIRouter()
logger = get_logger(__name__)

CONTROLLER = "entry_imports"

def create_links_for_import_job(link_service: LinkService, job_id: str) -> List[LinkDto]:
    return [
        link_service.create("get_import_job", "self", "GET", {"job_id": job_id}, controller=CONTROLLER)
    ]

@router.get("", status_code=200, name="entry_imports.get_import_jobs")
async def get_import_jobs_api(
    pagination: dict = Depends(get_pagination_params),
    accept: AcceptHeader = Depends(get_accept_header),
    link_service: LinkService = Depends(get_link_service),
    user_id: str = Depends(get_current_user_id)
):
    page, page_size = pagination["page"], pagination["page_size"]
    result = await list_import_jobs(user_id, page, page_size)

    job_dtos = [EntryImportJobDto.from_job(job) for job in result.items]
    if accept.include_links:
        for job_dto in job_dtos:
            job_dto.links = create_links_for_import_job(link_service, job_dto.id)

        result.links = [
            link_service.create("get_import_jobs", "self", "GET", {"page": page, "page_size": page_size}, controller=CONTROLLER),
            link_service.create("create_import_job", "create", "POST", controller=CONTROLLER)
        ]
        if result.has_previous_page:
            result.links.append(link_service.create(
                "get_import_jobs", "previous-page", "GET",
                {"page": page - 1, "page_size": page_size}, controller=CONTROLLER
            ))
        if result.has_next_page:
            result.links.append(link_service.create(
                "get_import_jobs", "next-page", "GET",
                {"page": page + 1, "page_size": page_size}, controller=CONTROLLER
            ))

    result.items = job_dtos
    return result

@router.post("", status_code=201, name="entry_imports.create_import_job")
async def create_import_job_api(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    accept: AcceptHeader = Depends(get_accept_header),
    link_service: LinkService = Depends(get_link_service),
    user_id: str = Depends(get_current_user_id)
):
    """
    Upload a CSV of ``habit_id,date,notes`` rows; the entries are created in the background.
    """
    content = await file.read()

    try:
        job = await create_import_job(user_id, file.filename or "", content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    background_tasks.add_task(process_entry_import_job, job.id)
    logger.info(f"Scheduled import job {job.id}")

    job_dto = EntryImportJobDto.from_job(job)
    if accept.include_links:
        job_dto.links = create_links_for_import_job(link_service, job.id)
    return job_dto

@router.get("/{job_id}", status_code=200, name="entry_imports.get_import_job")
async def get_import_job_api(
    job_id: str = Path(...),
    accept: AcceptHeader = Depends(get_accept_header),
    link_service: LinkService = Depends(get_link_service),
    user_id: str = Depends(get_current_user_id)
):
    try:
        job = await get_import_job(user_id, job_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    job_dto = EntryImportJobDto.from_job(job)
    if accept.include_links:
        job_dto.links = create_links_for_import_job(link_service, job.id)
    return job_dto
