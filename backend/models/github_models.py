# models/github_models.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.common_models import LinkDto

class StoreGitHubAccessTokenRequest(BaseModel):
    access_token: str = Field(min_length=1)
    expires_in_days: int = Field(ge=1, le=365)

# GitHub payloads carry many more keys than we read; keep them all
class GitHubUserProfileDto(BaseModel):
    model_config = ConfigDict(extra="allow")

    login: str
    id: int
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    html_url: Optional[str] = None
    bio: Optional[str] = None
    public_repos: int = 0
    followers: int = 0
    following: int = 0
    created_at: Optional[datetime] = None
    links: List[LinkDto] = Field(default_factory=list)

class GitHubEventActorDto(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    login: str

class GitHubEventRepoDto(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    name: str

class GitHubEventDto(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    type: str
    actor: GitHubEventActorDto
    repo: GitHubEventRepoDto
    public: bool = True
    created_at: datetime
