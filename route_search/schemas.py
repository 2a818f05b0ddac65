from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

TransportMode = Literal["flight", "train", "bus", "car", "subway", "walk"]
AccommodationGrade = Literal["budget", "standard", "premium"]

# ------- Request models -------
class TravelRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    departure: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    start_date: date = Field(..., validation_alias=AliasChoices("start_date", "startDate"))
    duration: int = Field(..., ge=1)
    budget: float = Field(..., gt=0)
    preferences: List[str] = Field(default_factory=list)

    @field_validator("departure", "destination")
    @classmethod
    def _strip_place(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("place name must not be blank")
        return value

    @field_validator("preferences")
    @classmethod
    def _clean_preferences(cls, value: List[str]) -> List[str]:
        cleaned: List[str] = []
        for tag in value:
            tag = str(tag).strip()
            if tag and tag not in cleaned:
                cleaned.append(tag)
        return cleaned

# ------- Geography -------
class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    display_name: str = ""

class RouteInfo(BaseModel):
    distance_km: float = Field(..., ge=0)
    duration_minutes: int = Field(..., ge=0)
    source: Literal["google", "openroute", "estimate"] = "estimate"

class PlaceResult(BaseModel):
    """Canonical attraction record, whatever place source produced it."""
    name: str
    location: str = ""
    coordinates: Optional[Coordinates] = None
    category_tags: List[str] = Field(default_factory=list)
    popularity: float = Field(3.0, ge=0, le=5)
    source: Literal["google", "opentripmap", "mock"] = "mock"

# ------- Options -------
class TransportOption(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mode: TransportMode
    origin: str = Field(..., validation_alias=AliasChoices("origin", "from"))
    destination: str = Field(..., validation_alias=AliasChoices("destination", "to"))
    cost: float = Field(..., ge=0)
    duration_minutes: int = Field(..., ge=0)
    departure_time: datetime
    arrival_time: datetime

    @model_validator(mode="after")
    def _arrival_after_departure(self) -> "TransportOption":
        if self.arrival_time <= self.departure_time:
            raise ValueError("arrival_time must be later than departure_time")
        return self

class AccommodationOption(BaseModel):
    name: str
    location: str
    cost_per_night: float = Field(..., ge=0)
    rating: float = Field(0.0, ge=0, le=5)
    tags: List[str] = Field(default_factory=list)
    grade: Optional[AccommodationGrade] = None

class AttractionOption(BaseModel):
    name: str
    location: str = ""
    entrance_fee: float = Field(0.0, ge=0)
    visit_duration_minutes: int = Field(0, ge=0)
    tags: List[str] = Field(default_factory=list)
    rating: float = Field(0.0, ge=0, le=5)
    coordinates: Optional[Coordinates] = None
    priority: float = Field(5.0, ge=1, le=10)

# ------- Schedules -------
class TimeSlot(BaseModel):
    start: datetime
    end: datetime
    activity: str
    location: str = ""

class DaySchedule(BaseModel):
    day: int
    day_date: date
    slots: List[TimeSlot] = Field(default_factory=list)
    total_hours: float = 0.0

# ------- Candidates & results -------
class CostBreakdown(BaseModel):
    transport: float = Field(0.0, ge=0)
    accommodation: float = Field(0.0, ge=0)
    attractions: float = Field(0.0, ge=0)
    total: float = Field(0.0, ge=0)

    @model_validator(mode="after")
    def _total_is_sum(self) -> "CostBreakdown":
        expected = self.transport + self.accommodation + self.attractions
        if abs(self.total - expected) > 1e-6:
            raise ValueError(f"breakdown total {self.total} != component sum {expected}")
        return self

class RouteCandidate(BaseModel):
    id: str
    transports: List[TransportOption] = Field(default_factory=list)
    accommodations: List[AccommodationOption] = Field(default_factory=list)
    attractions: List[AttractionOption] = Field(default_factory=list)
    total_cost: float = Field(..., ge=0)
    total_duration_minutes: int = Field(..., ge=0)
    score: float = Field(0.0, ge=0, le=1)
    breakdown: CostBreakdown
    schedule: List[DaySchedule] = Field(default_factory=list)

    @model_validator(mode="after")
    def _cost_matches_breakdown(self) -> "RouteCandidate":
        if abs(self.total_cost - self.breakdown.total) > 1e-6:
            raise ValueError("total_cost must equal breakdown.total")
        return self

    @property
    def tags(self) -> List[str]:
        """Tags of every lodging and attraction in the itinerary."""
        collected: List[str] = []
        for acc in self.accommodations:
            collected.extend(acc.tags)
        for attr in self.attractions:
            collected.extend(attr.tags)
        return collected

class ScoringWeights(BaseModel):
    cost: float = Field(0.45, ge=0)
    time: float = Field(0.30, ge=0)
    preference: float = Field(0.20, ge=0)
    fatigue: float = Field(0.05, ge=0)

    def clamped(
        self,
        cost_floor: float = 0.3,
        cost_ceiling: float = 0.6,
        preference_ceiling: float = 0.35,
    ) -> "ScoringWeights":
        """Copy with cost held in its band, preference capped and nothing negative."""
        return ScoringWeights(
            cost=min(cost_ceiling, max(cost_floor, self.cost)),
            time=max(0.0, self.time),
            preference=min(preference_ceiling, max(0.0, self.preference)),
            fatigue=max(0.0, self.fatigue),
        )

    def describe(self) -> str:
        return (
            f"cost={self.cost * 100:.0f}% time={self.time * 100:.0f}% "
            f"pref={self.preference * 100:.0f}% fatigue={self.fatigue * 100:.0f}%"
        )

class SearchResult(BaseModel):
    candidates: List[RouteCandidate] = Field(default_factory=list)
    iterations: int = 0
    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    notes: List[str] = Field(default_factory=list)
