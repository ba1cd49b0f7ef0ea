from pydantic import BaseModel, Field, NonNegativeInt


class PreferencesIn(BaseModel):
    language: str = Field(min_length=2, max_length=5)
    region: str | None = Field(default=None, min_length=2, max_length=2)
    genres: list[NonNegativeInt] = Field(default_factory=list, max_length=50)


class Preferences(BaseModel):
    language: str | None = None
    region: str | None = None
    genres: list[int] = Field(default_factory=list)
