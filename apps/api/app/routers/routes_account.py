from fastapi import APIRouter, Depends

from moviebox_user.settings.preferences_service import PreferencesService
from moviebox_user.settings.schemas import PreferencesIn

from app.deps.supabase_client import get_current_user_id, get_preferences_service

router = APIRouter(prefix="/account", tags=["account"])


@router.get("/preferences")
async def get_preferences(
    user_id: str = Depends(get_current_user_id),
    service: PreferencesService = Depends(get_preferences_service),
):
    return await service.get(user_id)


# Replace language/region/genres in user_preferences
@router.patch("/preferences")
async def update_preferences(
    req: PreferencesIn,
    user_id: str = Depends(get_current_user_id),
    service: PreferencesService = Depends(get_preferences_service),
):
    await service.update(user_id, req)
    return {"ok": True}
