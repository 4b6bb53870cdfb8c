from __future__ import annotations

import logging
import posixpath
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from plugin_autoloader.plugin_runtime.autoload import Autoloader, get_autoloader
from plugin_autoloader.plugin_runtime.errors import LoadFailure
from plugin_autoloader.schemas.autoload import (
    DirectoriesResponse,
    FilesResponse,
    LoadAllRequest,
    LoadAllResponse,
    LoadedEntryModel,
    LoadRequest,
    LoadStatusResponse,
    ReloadResponse,
)

router = APIRouter(prefix='/autoload', tags=['autoload'])
logger = logging.getLogger(__name__)


def _load_failed(exc: LoadFailure) -> HTTPException:
    return HTTPException(status_code=422, detail=exc.to_dict())


def _status(autoloader: Autoloader, tag: str, name: str) -> LoadStatusResponse:
    entry = autoloader.entry(tag, name)
    return LoadStatusResponse(
        relative_path=autoloader.normalize(tag, name),
        loaded=entry is not None,
        entry=LoadedEntryModel.from_entry(entry) if entry else None,
    )


def _all_entries(autoloader: Autoloader) -> List[LoadedEntryModel]:
    return [LoadedEntryModel.from_entry(entry) for _, entry in autoloader.entries()]


@router.get('/directories', response_model=DirectoriesResponse)
def list_directories(autoloader: Autoloader = Depends(get_autoloader)):
    return DirectoriesResponse(
        module_directories=autoloader.module_directories(),
        search_directories=autoloader.search_directories(),
    )


@router.get('/entries', response_model=List[LoadedEntryModel])
def list_entries(autoloader: Autoloader = Depends(get_autoloader)):
    return _all_entries(autoloader)


@router.get('/status', response_model=LoadStatusResponse)
def load_status(
    tag: str = Query(...),
    name: str = Query(...),
    autoloader: Autoloader = Depends(get_autoloader),
):
    return _status(autoloader, tag, name)


@router.get('/files', response_model=FilesResponse)
def list_files(tag: str = Query(..., min_length=1), autoloader: Autoloader = Depends(get_autoloader)):
    return FilesResponse(tag=tag, files=autoloader.files_to_load(tag))


@router.post('/load', response_model=LoadStatusResponse)
def load(payload: LoadRequest, autoloader: Autoloader = Depends(get_autoloader)):
    try:
        found = autoloader.load(payload.tag, payload.name)
    except LoadFailure as exc:
        raise _load_failed(exc) from exc
    if not found:
        logger.info("load requested for %s/%s but no file exists", payload.tag, payload.name)
    return _status(autoloader, payload.tag, payload.name)


@router.post('/load-all', response_model=LoadAllResponse)
def load_all(payload: LoadAllRequest, autoloader: Autoloader = Depends(get_autoloader)):
    try:
        autoloader.load_all(payload.tag)
    except LoadFailure as exc:
        raise _load_failed(exc) from exc
    prefix = posixpath.normpath(payload.tag.replace('\\', '/')) + '/'
    entries = [m for m in _all_entries(autoloader) if m.relative_path.startswith(prefix)]
    return LoadAllResponse(tag=payload.tag, entries=entries)


@router.post('/reload', response_model=ReloadResponse)
def reload_changed(autoloader: Autoloader = Depends(get_autoloader)):
    try:
        reloaded = autoloader.reload_changed()
    except LoadFailure as exc:
        raise _load_failed(exc) from exc
    return ReloadResponse(
        reloaded=[LoadedEntryModel.from_entry(e) for e in reloaded],
        entries=_all_entries(autoloader),
    )
