from __future__ import annotations

from datetime import datetime, timezone

from anyio import to_thread
from postgrest.exceptions import APIError as PostgrestAPIError

from moviebox_core.errors import map_pgrest

from .schemas import Preferences

TABLE_PREFS = "user_preferences"


class SupabasePreferencesRepo:
    def __init__(self, client):
        self.client = client

    # ---------- Async facade ----------
    async def get_preferences(self, user_id: str) -> Preferences | None:
        return await to_thread.run_sync(self._get_preferences_sync, user_id)

    async def upsert_preferences(self, user_id: str, prefs: Preferences) -> None:
        await to_thread.run_sync(self._upsert_preferences_sync, user_id, prefs)

    # ---------- Private sync impls ----------
    def _get_preferences_sync(self, user_id: str) -> Preferences | None:
        res = (
            self.client.table(TABLE_PREFS)
            .select("language,region,genres")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        if not rows:
            return None
        row = rows[0]
        return Preferences(
            language=row.get("language"),
            region=row.get("region"),
            genres=row.get("genres") or [],
        )

    def _upsert_preferences_sync(self, user_id: str, prefs: Preferences) -> None:
        payload = {
            "user_id": user_id,
            **prefs.model_dump(),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            self.client.table(TABLE_PREFS).upsert(payload, on_conflict="user_id").execute()
        except PostgrestAPIError as e:
            raise map_pgrest(e)
