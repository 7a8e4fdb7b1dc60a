"""Task REST API router."""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import JSONResponse

from src.core.db_client import DBClient
from src.interface.dependencies import get_db, require_user
from src.services import task_service


router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def _dump(model: Any) -> Any:  # noqa: ANN401
    return model.model_dump(mode="json", by_alias=True)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(
    body: Any = Body(default=None),  # noqa: ANN401
    owner_id: str = Depends(require_user),
    db: DBClient = Depends(get_db),
) -> JSONResponse:
    """Create a task for the caller."""
    task = await task_service.create_task(db=db, owner_id=owner_id, fields=body)
    return JSONResponse(content={"success": True, "data": _dump(task)}, status_code=status.HTTP_201_CREATED)


@router.get("")
async def list_tasks(
    task_status: str | None = Query(default=None, alias="status"),
    priority: str | None = Query(default=None),
    search: str | None = Query(default=None),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    owner_id: str = Depends(require_user),
    db: DBClient = Depends(get_db),
) -> JSONResponse:
    """List the caller's tasks with optional filters and ordering."""
    params = {"status": task_status, "priority": priority, "search": search, "sortBy": sort_by}
    tasks, count = await task_service.list_tasks(db=db, owner_id=owner_id, params=params)
    return JSONResponse(content={"success": True, "count": count, "data": [_dump(task) for task in tasks]})


@router.get("/stats")
async def get_task_stats(
    owner_id: str = Depends(require_user),
    db: DBClient = Depends(get_db),
) -> JSONResponse:
    """Summarize the caller's tasks."""
    stats = await task_service.get_task_stats(db=db, owner_id=owner_id)
    return JSONResponse(content={"success": True, "data": _dump(stats)})


@router.get("/{task_id}")
async def get_task(
    task_id: str,
    owner_id: str = Depends(require_user),
    db: DBClient = Depends(get_db),
) -> JSONResponse:
    """Fetch one of the caller's tasks."""
    task = await task_service.get_task(db=db, owner_id=owner_id, task_id=task_id)
    return JSONResponse(content={"success": True, "data": _dump(task)})


@router.put("/{task_id}")
async def update_task(
    task_id: str,
    body: Any = Body(default=None),  # noqa: ANN401
    owner_id: str = Depends(require_user),
    db: DBClient = Depends(get_db),
) -> JSONResponse:
    """Update one of the caller's tasks."""
    task = await task_service.update_task(db=db, owner_id=owner_id, task_id=task_id, fields=body)
    return JSONResponse(content={"success": True, "data": _dump(task)})


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    owner_id: str = Depends(require_user),
    db: DBClient = Depends(get_db),
) -> JSONResponse:
    """Delete one of the caller's tasks."""
    await task_service.delete_task(db=db, owner_id=owner_id, task_id=task_id)
    return JSONResponse(content={"success": True, "message": "Task deleted successfully"})
