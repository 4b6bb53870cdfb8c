from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from plugin_autoloader.plugin_runtime.cache import LoadedEntry


class LoadedEntryModel(BaseModel):
    relative_path: str = Field(..., description="Normalized tag-prefixed path, e.g. reports/daily.py")
    absolute_path: str = Field(..., description="File the entry was last loaded from")
    modified_at: float = Field(..., description="Modification time of that file when it was loaded")

    @classmethod
    def from_entry(cls, entry: LoadedEntry) -> "LoadedEntryModel":
        return cls(
            relative_path=entry.relative_path,
            absolute_path=entry.absolute_path,
            modified_at=entry.modified_at,
        )


class DirectoriesResponse(BaseModel):
    module_directories: List[str]
    search_directories: List[str]


class LoadRequest(BaseModel):
    tag: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)


class LoadAllRequest(BaseModel):
    tag: str = Field(..., min_length=1)


class LoadStatusResponse(BaseModel):
    relative_path: str
    loaded: bool
    entry: Optional[LoadedEntryModel] = None


class LoadAllResponse(BaseModel):
    tag: str
    entries: List[LoadedEntryModel] = Field(default_factory=list)


class FilesResponse(BaseModel):
    tag: str
    files: List[str] = Field(default_factory=list)


class ReloadResponse(BaseModel):
    reloaded: List[LoadedEntryModel] = Field(default_factory=list)
    entries: List[LoadedEntryModel] = Field(default_factory=list)
