from __future__ import annotations

from .preferences_repo import SupabasePreferencesRepo
from .schemas import Preferences, PreferencesIn


class PreferencesService:
    def __init__(self, repo: SupabasePreferencesRepo):
        self.repo = repo

    async def get(self, user_id: str) -> dict:
        prefs = await self.repo.get_preferences(user_id)
        # no saved row reads as an empty object
        return prefs.model_dump() if prefs else {}

    async def update(self, user_id: str, req: PreferencesIn) -> None:
        await self.repo.upsert_preferences(
            user_id,
            Preferences(language=req.language, region=req.region, genres=req.genres),
        )
