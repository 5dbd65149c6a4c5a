# core/job.py - Background jobs: CSV entry imports and GitHub automation
import asyncio
import io
from datetime import datetime, UTC
from typing import Dict, List, Optional

import pandas as pd
from sqlmodel import col, select

from core.db import get_async_session_context
from core.logger import get_logger
from core.settings import settings
from models.db_models import Entry, EntryImportJob, Habit
from services.github_service import get_access_token, get_user_events, get_user_profile

logger = get_logger(__name__)

REQUIRED_COLUMNS = ("habit_id", "date")
MAX_RECORDED_ERRORS = 100
PROGRESS_COMMIT_INTERVAL = 100

# ===== CSV ENTRY IMPORT =====

def read_entry_records(content: bytes) -> List[Dict[str, str]]:
    """Parse an uploaded CSV into row dicts with ``habit_id``, ``date`` and ``notes``."""
    frame = pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False)
    frame.columns = [str(column).strip().lower() for column in frame.columns]

    missing = [column for column in REQUIRED_COLUMNS if column not in frame.columns]
    if missing:
        raise ValueError(f"CSV is missing required columns: {', '.join(missing)}")

    if "notes" not in frame.columns:
        frame["notes"] = ""

    return frame[["habit_id", "date", "notes"]].to_dict(orient="records")

def parse_record_date(value: str):
    if not value or not value.strip():
        raise ValueError("Date is required")
    parsed = pd.to_datetime(value.strip(), errors="raise")
    return parsed.date()

def _record_error(job: EntryImportJob, message: str) -> None:
    errors = list(job.errors or [])
    if len(errors) < MAX_RECORDED_ERRORS:
        errors.append(message)
    elif len(errors) == MAX_RECORDED_ERRORS:
        errors.append("Too many errors, stopping error collection...")
    # Reassign so the JSON column is flagged dirty
    job.errors = errors

async def process_entry_import_job(job_id: str) -> None:
    """
    Turn every CSV row of an import job into a ``file_import`` entry.

    Rows pointing at unknown habits, or habits of another user, are counted
    as failed and the job keeps going. Anything that breaks the job as a whole
    marks it ``failed``.
    """
    async with get_async_session_context() as session:
        result = await session.exec(select(EntryImportJob).where(EntryImportJob.id == job_id))
        job = result.first()

        if not job:
            logger.error(f"Import job {job_id} not found")
            return

        try:
            job.status = "processing"
            session.add(job)
            await session.commit()

            records = read_entry_records(job.file_content)
            job.total_records = len(records)
            session.add(job)
            await session.commit()

            habit_cache: Dict[str, Optional[Habit]] = {}

            for record in records:
                habit_id = record["habit_id"].strip()
                try:
                    if habit_id not in habit_cache:
                        habit_result = await session.exec(
                            select(Habit).where((Habit.id == habit_id) & (Habit.user_id == job.user_id))
                        )
                        habit_cache[habit_id] = habit_result.first()

                    habit = habit_cache[habit_id]
                    if habit is None:
                        raise ValueError(
                            f"Habit with ID '{habit_id}' does not exist or does not belong to the user"
                        )

                    session.add(Entry(
                        habit_id=habit.id,
                        user_id=job.user_id,
                        value=habit.target_value,
                        notes=record["notes"] or None,
                        source="file_import",
                        date=parse_record_date(record["date"])
                    ))
                    job.successful_records += 1
                except ValueError as e:
                    job.failed_records += 1
                    _record_error(job, f"Error processing record: {e}")
                finally:
                    job.processed_records += 1

                if job.processed_records % PROGRESS_COMMIT_INTERVAL == 0:
                    session.add(job)
                    await session.commit()

            job.status = "completed"
            job.completed_at_utc = datetime.now(UTC)
            session.add(job)
            await session.commit()

            logger.info(
                f"Import job {job_id} completed: {job.successful_records} succeeded, "
                f"{job.failed_records} failed of {job.total_records}"
            )
        except Exception as e:
            logger.exception(f"Error processing import job {job_id}: {e}")
            await session.rollback()

            failed_result = await session.exec(select(EntryImportJob).where(EntryImportJob.id == job_id))
            failed_job = failed_result.one()
            failed_job.status = "failed"
            failed_job.errors = list(failed_job.errors or []) + [f"Fatal error: {e}"]
            failed_job.completed_at_utc = datetime.now(UTC)
            session.add(failed_job)
            await session.commit()

# ===== GITHUB AUTOMATION =====

async def get_github_automated_habits() -> List[Habit]:
    async with get_async_session_context() as session:
        result = await session.exec(
            select(Habit).where(
                (Habit.automation_source == "github") &
                (Habit.is_archived == False)  # noqa: E712
            )
        )
        return list(result.all())

async def process_github_habit(habit: Habit) -> int:
    """Create ``automation`` entries for the owner's GitHub events not yet recorded. Returns the count."""
    access_token = await get_access_token(habit.user_id)
    if not access_token:
        logger.warning(f"No valid GitHub token for user_id={habit.user_id}, skipping habit {habit.id}")
        return 0

    profile = await get_user_profile(access_token)
    if profile is None:
        return 0

    events = await get_user_events(profile.login, access_token)
    if not events:
        return 0

    external_ids = [f"github_{habit.id}_{event.id}" for event in events]

    async with get_async_session_context() as session:
        existing_result = await session.exec(
            select(Entry.external_id).where(col(Entry.external_id).in_(external_ids))
        )
        existing = set(existing_result.all())

        created = 0
        for event, external_id in zip(events, external_ids):
            if external_id in existing:
                continue
            session.add(Entry(
                habit_id=habit.id,
                user_id=habit.user_id,
                value=1,
                notes=f"{event.type} on {event.repo.name}",
                source="automation",
                external_id=external_id,
                date=event.created_at.date()
            ))
            created += 1

        if created:
            await session.commit()

    logger.info(f"Created {created} automation entries for habit {habit.id}")
    return created

async def run_github_automation() -> None:
    habits = await get_github_automated_habits()
    logger.info(f"Found {len(habits)} habits with GitHub automation")

    for habit in habits:
        try:
            await process_github_habit(habit)
        except Exception as e:
            logger.exception(f"GitHub automation failed for habit {habit.id}: {e}")

async def run_github_automation_scheduler() -> None:
    """Run ``run_github_automation`` forever, one scan per configured interval."""
    interval_seconds = settings.GITHUB_AUTOMATION_SCAN_INTERVAL_MINUTES * 60
    logger.info(f"GitHub automation scheduler started, interval={interval_seconds}s")

    while True:
        try:
            await run_github_automation()
        except Exception as e:
            logger.exception(f"GitHub automation scan failed: {e}")
        await asyncio.sleep(interval_seconds)
