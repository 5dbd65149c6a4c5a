# main.py
# Standard library imports
import asyncio
import uuid
from contextlib import asynccontextmanager

# Third-party imports
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse

# Local imports
from api import auth, users, habits, habit_tags, tags, entries, entry_imports, github
from core.etag import ETagMiddleware, InMemoryETagStore
from core.idempotency import IdempotencyStore
from core.init import run_all
from core.job import run_github_automation_scheduler
from core.logger import get_logger, request_id_ctx_var
from core.settings import settings
from core.sorting import SortMapping, SortMappingRegistry
from models.db_models import Entry, Habit, Tag
from models.entry_models import EntryDto
from models.habit_models import HabitDto, HabitWithTagsDto
from models.tag_models import TagDto

# export environment variables
FRONTEND_ORIGIN = settings.FRONTEND_ORIGIN
GITHUB_AUTOMATION_ENABLED = settings.GITHUB_AUTOMATION_ENABLED

logger = get_logger(__name__)

HABIT_SORT_MAPPINGS = (
    SortMapping("name", "name"),
    SortMapping("description", "description"),
    SortMapping("type", "type"),
    SortMapping("frequency.type", "frequency_type"),
    SortMapping("frequency.times_per_period", "frequency_times_per_period"),
    SortMapping("target.value", "target_value"),
    SortMapping("target.unit", "target_unit"),
    SortMapping("status", "status"),
    SortMapping("end_date", "end_date"),
    SortMapping("created_at_utc", "created_at_utc"),
    SortMapping("updated_at_utc", "updated_at_utc"),
    SortMapping("last_completed_at_utc", "last_completed_at_utc"),
)

ENTRY_SORT_MAPPINGS = (
    SortMapping("date", "date"),
    SortMapping("value", "value"),
    SortMapping("notes", "notes"),
    SortMapping("source", "source"),
    SortMapping("habit_id", "habit_id"),
    SortMapping("created_at_utc", "created_at_utc"),
    SortMapping("updated_at_utc", "updated_at_utc"),
)

TAG_SORT_MAPPINGS = (
    SortMapping("name", "name"),
    SortMapping("description", "description"),
    SortMapping("created_at_utc", "created_at_utc"),
    SortMapping("updated_at_utc", "updated_at_utc"),
)

def build_sort_mapping_registry() -> SortMappingRegistry:
    registry = SortMappingRegistry()
    registry.register(HabitDto, Habit, HABIT_SORT_MAPPINGS)
    registry.register(HabitWithTagsDto, Habit, HABIT_SORT_MAPPINGS)
    registry.register(EntryDto, Entry, ENTRY_SORT_MAPPINGS)
    registry.register(TagDto, Tag, TAG_SORT_MAPPINGS)
    return registry.freeze()

run_all()

@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = None
    if GITHUB_AUTOMATION_ENABLED:
        scheduler = asyncio.create_task(run_github_automation_scheduler())

    yield

    if scheduler is not None:
        scheduler.cancel()
        try:
            await scheduler
        except asyncio.CancelledError:
            logger.info("GitHub automation scheduler stopped")

app = FastAPI(title="DevHabit API", lifespan=lifespan)

app.state.sort_mapping_registry = build_sort_mapping_registry()
app.state.etag_store = InMemoryETagStore()
app.state.idempotency_store = IdempotencyStore()

# Mount routers first; /entries/imports must be matched before /entries/{entry_id}
app.include_router(auth.router, prefix="/auth", tags=["Authentication APIs"])
app.include_router(users.router, prefix="/users", tags=["User APIs"])
app.include_router(habits.router, prefix="/habits", tags=["Habit APIs"])
app.include_router(habit_tags.router, prefix="/habits", tags=["Habit Tag APIs"])
app.include_router(tags.router, prefix="/tags", tags=["Tag APIs"])
app.include_router(entry_imports.router, prefix="/entries/imports", tags=["Entry Import APIs"])
app.include_router(entries.router, prefix="/entries", tags=["Entry APIs"])
app.include_router(github.router, prefix="/github", tags=["GitHub APIs"])

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"}
    )

app.add_middleware(ETagMiddleware, store=app.state.etag_store)

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request_id_ctx_var.set(request_id)
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response

app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag", "Location", "X-Request-ID"],
)
