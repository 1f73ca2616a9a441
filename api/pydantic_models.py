from pydantic import BaseModel, EmailStr, Field
from typing import List, Literal, Optional

from models import LeaderboardEntry, LogEntry, UserProfile

# --- AUTH ---
class LoginRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=80)
    email: Optional[EmailStr] = None

class AuthResponse(BaseModel):
    token: str
    profile: UserProfile

# --- ANALYSIS ---
class TextAnalysisRequest(BaseModel):
    mediaType: Literal['text'] = 'text'
    text: str = Field(min_length=1)

class CommitResponse(BaseModel):
    log: LogEntry
    profile: UserProfile

# --- PROFILE & GAMIFICATION ---
class BadgesResponse(BaseModel):
    badges: List[LogEntry] = []

class LeaderboardResponse(BaseModel):
    entries: List[LeaderboardEntry]
    myRank: Optional[LeaderboardEntry] = None

class DailyProgressResponse(BaseModel):
    date: str
    categories: dict
    completedCount: int
    totalCategories: int
    ratio: float
