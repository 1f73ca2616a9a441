from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Minimum reward for any committed activity, however high its carbon score.
MIN_POINTS_PER_LOG = 10


class MediaType(str, Enum):
    IMAGE = 'image'
    VIDEO = 'video'
    AUDIO = 'audio'
    TEXT = 'text'


class MainCategory(str, Enum):
    WASTE = 'Waste'
    TRANSPORT = 'Transport'
    FOOD = 'Food'
    ENERGY = 'Energy'
    LIFESTYLE = 'Lifestyle'


class ItemCategory(str, Enum):
    RECYCLABLE = 'Recyclable'
    COMPOSTABLE = 'Compostable'
    LANDFILL = 'Landfill'
    HAZARDOUS = 'Hazardous'
    REUSABLE = 'Reusable'
    OTHER = 'Other'


# --- ANALYSIS RESULT ---
# Everything below is produced by the analysis collaborator and frozen once built.

class BoundingBox(BaseModel):
    model_config = ConfigDict(frozen=True)

    ymin: float = Field(ge=0.0, le=1.0)
    xmin: float = Field(ge=0.0, le=1.0)
    ymax: float = Field(ge=0.0, le=1.0)
    xmax: float = Field(ge=0.0, le=1.0)

    @model_validator(mode='after')
    def check_ordering(self):
        if self.ymin > self.ymax or self.xmin > self.xmax:
            raise ValueError("Bounding box minimum exceeds maximum")
        return self


class DetectedItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: ItemCategory
    carbonFootprint: float = Field(ge=0.0)  # grams CO2e
    impactDescription: str
    suggestion: str
    box: Optional[BoundingBox] = None


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: str
    mainCategory: MainCategory
    totalCarbonScore: int = Field(ge=0, le=100)  # 0 = eco-friendly, 100 = high impact
    items: List[DetectedItem] = []
    generalTips: List[str] = []

    @model_validator(mode='after')
    def check_unique_item_ids(self):
        ids = [item.id for item in self.items]
        if len(ids) != len(set(ids)):
            raise ValueError("Detected item ids must be unique within a result")
        return self


def points_for_score(total_carbon_score: int) -> int:
    """Points awarded for committing a result: a lower score earns more, never below the floor."""
    return max(MIN_POINTS_PER_LOG, 100 - total_carbon_score)


# --- PROFILE ---

class LogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    date: str  # ISO-8601 commit time
    mediaType: MediaType
    result: AnalysisResult
    visualizationUrl: Optional[str] = None
    pointsEarned: int = Field(ge=MIN_POINTS_PER_LOG)

    @property
    def is_badge(self) -> bool:
        return self.visualizationUrl is not None


class UserProfile(BaseModel):
    """The aggregate root. Copies are produced by the mutators; instances are never edited in place."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str = ""
    avatarUrl: str = ""
    totalPoints: int = Field(default=0, ge=0)
    streakDays: int = Field(default=1, ge=1)
    isGuest: bool = False
    logs: List[LogEntry] = []  # newest first

    def find_log(self, log_id: str) -> Optional[LogEntry]:
        return next((log for log in self.logs if log.id == log_id), None)


# --- DERIVED VIEWS ---

class LeaderboardEntry(BaseModel):
    id: str
    name: str
    avatarUrl: str = ""
    points: int = 0
    isCurrentUser: bool = False
    rank: int = 0


class DailyCompletion(BaseModel):
    date: str
    categories: Dict[str, bool]  # tracked MainCategory value -> done today
    completedCount: int
    totalCategories: int

    @property
    def ratio(self) -> float:
        return self.completedCount / self.totalCategories if self.totalCategories else 0.0
