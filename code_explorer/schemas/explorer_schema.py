"""Pydantic schemas for the repository explorer endpoints."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RepoItem(BaseModel):
    """A file or directory entry in a listing."""

    name: str
    path: str
    type: Literal["file", "dir"]
    size: Optional[int] = None
    sha: Optional[str] = None


class FileContent(BaseModel):
    content: str
    size: int = 0
    encoding: str = "utf-8"


class LineMatch(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    line_number: int
    line: str


class SearchHit(BaseModel):
    path: str
    matches: list[LineMatch] = Field(default_factory=list)


class BrowseResponse(BaseModel):
    success: bool = True
    path: str
    items: list[RepoItem]


class ViewResponse(BaseModel):
    success: bool = True
    path: str
    content: str
    language: str
    size: int
    truncated: bool


class SearchResponse(BaseModel):
    success: bool = True
    query: str
    results: list[SearchHit]
    count: int
