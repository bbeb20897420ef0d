"""JSON view over the sync controller.

The view reads the snapshot, input buffers and edit state, and forwards user
gestures to the controller. Remote failures come back as an OperationResult
with ``ok = false``; the snapshot simply does not reflect the change.
"""

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from todosync.core.auth import LocalAuthGate
from todosync.core.errors import InvalidTransitionError, ValidationError
from todosync.domain.task import TaskPriority
from todosync.domain.user import User
from todosync.services.sync_controller import OperationResult, SyncController


router = APIRouter(tags=["view"])
logger = logging.getLogger(__name__)


class SessionRequest(BaseModel):
    id: str = Field(..., min_length=1)
    email: str = ""


class ListCreateRequest(BaseModel):
    name: str = ""


class TaskFieldsRequest(BaseModel):
    title: str = ""
    description: str = ""
    due_date: date | str | None = None
    priority: TaskPriority | str | None = None


class BeginEditRequest(BaseModel):
    list_id: str
    task_id: str


class ListNameBufferRequest(BaseModel):
    name: str


def get_controller(request: Request) -> SyncController:
    return request.app.state.controller


def get_auth(request: Request) -> LocalAuthGate:
    return request.app.state.auth


def _present(controller: SyncController) -> dict[str, Any]:
    slot = controller.edit_session.slot
    return {
        "user": controller.current_user.model_dump() if controller.current_user else None,
        "snapshot": controller.snapshot.model_dump(mode="json"),
        "edit": {
            "state": str(controller.edit_session.state),
            "list_id": slot.list_id if slot else None,
            "task_id": slot.task_id if slot else None,
            "draft": slot.draft.model_dump(mode="json") if slot else None,
        },
        "buffers": {
            "new_list_name": controller.buffers.new_list_name,
            "task_inputs": controller.buffers.task_inputs(),
        },
    }


def _unprocessable(e: ValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail=str(e))


def _conflict(e: InvalidTransitionError) -> HTTPException:
    return HTTPException(status_code=409, detail=str(e))


@router.post("/session")
async def sign_in(
    body: SessionRequest,
    auth: LocalAuthGate = Depends(get_auth),
    controller: SyncController = Depends(get_controller),
) -> dict[str, Any]:
    """Start a session; the controller reloads through its subscription."""
    await auth.sign_in(User(id=body.id, email=body.email))
    return _present(controller)


@router.delete("/session")
async def sign_out(controller: SyncController = Depends(get_controller)) -> dict[str, Any]:
    await controller.sign_out()
    return _present(controller)


@router.get("/snapshot")
async def read_snapshot(controller: SyncController = Depends(get_controller)) -> dict[str, Any]:
    return _present(controller)


@router.post("/lists")
async def create_list(body: ListCreateRequest, controller: SyncController = Depends(get_controller)) -> OperationResult:
    try:
        return await controller.create_list(body.name)
    except ValidationError as e:
        raise _unprocessable(e) from e


@router.delete("/lists/{list_id}")
async def delete_list(list_id: str, controller: SyncController = Depends(get_controller)) -> OperationResult:
    return await controller.delete_list(list_id)


@router.post("/lists/{list_id}/tasks")
async def create_task(
    list_id: str, body: TaskFieldsRequest, controller: SyncController = Depends(get_controller)
) -> OperationResult:
    try:
        return await controller.create_task(list_id, body.model_dump(exclude_none=True))
    except ValidationError as e:
        raise _unprocessable(e) from e


@router.delete("/lists/{list_id}/tasks/{task_id}")
async def delete_task(list_id: str, task_id: str, controller: SyncController = Depends(get_controller)) -> OperationResult:
    return await controller.delete_task(list_id, task_id)


@router.post("/edit")
async def begin_edit(body: BeginEditRequest, controller: SyncController = Depends(get_controller)) -> dict[str, Any]:
    try:
        controller.begin_edit(body.list_id, body.task_id)
    except InvalidTransitionError as e:
        raise _conflict(e) from e
    return _present(controller)


@router.patch("/edit")
async def update_draft(body: dict[str, Any], controller: SyncController = Depends(get_controller)) -> dict[str, Any]:
    try:
        controller.update_draft(body)
    except InvalidTransitionError as e:
        raise _conflict(e) from e
    except ValidationError as e:
        raise _unprocessable(e) from e
    return _present(controller)


@router.post("/edit/save")
async def save_edit(controller: SyncController = Depends(get_controller)) -> OperationResult:
    try:
        return await controller.save_edit()
    except InvalidTransitionError as e:
        raise _conflict(e) from e
    except ValidationError as e:
        raise _unprocessable(e) from e


@router.delete("/edit")
async def cancel_edit(controller: SyncController = Depends(get_controller)) -> dict[str, Any]:
    controller.cancel_edit()
    return _present(controller)


@router.put("/buffers/list")
async def set_list_buffer(
    body: ListNameBufferRequest, controller: SyncController = Depends(get_controller)
) -> dict[str, Any]:
    controller.buffers.set_new_list_name(body.name)
    return _present(controller)


@router.put("/buffers/lists/{list_id}")
async def set_task_buffer(
    list_id: str, body: dict[str, Any], controller: SyncController = Depends(get_controller)
) -> dict[str, Any]:
    controller.buffers.set_task_input(list_id, body)
    return _present(controller)


@router.post("/buffers/list/submit")
async def submit_list_buffer(controller: SyncController = Depends(get_controller)) -> OperationResult:
    try:
        return await controller.submit_new_list()
    except ValidationError as e:
        raise _unprocessable(e) from e


@router.post("/buffers/lists/{list_id}/submit")
async def submit_task_buffer(list_id: str, controller: SyncController = Depends(get_controller)) -> OperationResult:
    try:
        return await controller.submit_new_task(list_id)
    except ValidationError as e:
        raise _unprocessable(e) from e


@router.post("/maintenance/reconcile")
async def reconcile(controller: SyncController = Depends(get_controller)) -> OperationResult:
    return await controller.reconcile()
