# api/habit_tags.py
from fastapi import APIRouter, Depends, HTTPException, Path, Response

from core.logger import get_logger
from core.security import get_current_user_id
from models.habit_models import UpsertHabitTagsRequest
from services.habit_tag_service import remove_habit_tag, upsert_habit_tags

router = APIRouter()
logger = get_logger(__name__)

@router.put("/{habit_id}/tags", status_code=200, name="habit_tags.upsert_habit_tags")
async def upsert_habit_tags_api(
    request: UpsertHabitTagsRequest,
    habit_id: str = Path(...),
    user_id: str = Depends(get_current_user_id)
):
    """
    Replace the habit's tags with ``tag_ids``. 204 when nothing changed.
    """
    try:
        changed = await upsert_habit_tags(user_id, habit_id, request.tag_ids)
    except ValueError as e:
        if "not found" in str(e).lower():
            raise HTTPException(status_code=404, detail=str(e))
        raise HTTPException(status_code=400, detail=str(e))

    if not changed:
        return Response(status_code=204)
    return Response(status_code=200)

@router.delete("/{habit_id}/tags/{tag_id}", status_code=204, name="habit_tags.delete_habit_tag")
async def delete_habit_tag_api(
    habit_id: str = Path(...),
    tag_id: str = Path(...),
    user_id: str = Depends(get_current_user_id)
):
    try:
        await remove_habit_tag(user_id, habit_id, tag_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
