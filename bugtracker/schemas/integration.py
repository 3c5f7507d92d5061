"""Schemas for GitHub lookups (field names follow the GitHub API)"""
from typing import List, Optional

from pydantic import BaseModel


class RepoRef(BaseModel):
    owner: str
    repo: str


class CommitRef(BaseModel):
    owner: str
    repo: str
    sha: str


class RepoInfo(BaseModel):
    full_name: Optional[str] = None
    private: bool = False
    html_url: Optional[str] = None
    default_branch: Optional[str] = None
    description: Optional[str] = None
    stargazers_count: int = 0
    open_issues_count: int = 0


class CommitInfo(BaseModel):
    sha: Optional[str] = None
    html_url: Optional[str] = None
    message: Optional[str] = None
    author: Optional[str] = None
    date: Optional[str] = None


class CommitList(BaseModel):
    commits: List[CommitInfo]
