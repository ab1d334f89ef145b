from typing import Awaitable, TypeVar

from fastapi import APIRouter, HTTPException, status
from loguru import logger
from pydantic import BaseModel

from notegraph.domain.note import Note
from notegraph.exceptions import (
    InvalidTransitionError,
    NoteNotFoundError,
    OperationCancelledError,
    OperationTimeoutError,
)
from notegraph.service import KnowledgeService

T = TypeVar("T")


class LinkedNoteRequest(BaseModel):
    topic: str


async def _handle(operation: Awaitable[T]) -> T:
    """Await a service call, translating domain errors to HTTP errors."""
    try:
        return await operation
    except NoteNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except OperationCancelledError as e:
        logger.info(f"Operation {e.operation_id} cancelled by client")
        raise HTTPException(status_code=409, detail=str(e)) from e
    except OperationTimeoutError as e:
        logger.warning(str(e))
        raise HTTPException(status_code=504, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def _create_suggestions_endpoint(service: KnowledgeService):
    """Create the endpoint returning a note with fresh suggestions."""

    async def get_suggestions(owner_id: str, note_id: str, operation_id: str | None = None) -> Note:
        return await _handle(service.get_suggestions(note_id, owner_id, operation_id=operation_id))

    return get_suggestions


def _create_decision_endpoints(service: KnowledgeService):
    """Create the accept and reject endpoint handlers."""

    async def accept_suggestion(
        owner_id: str, note_id: str, target_id: str, operation_id: str | None = None
    ) -> Note:
        return await _handle(
            service.accept_suggestion(note_id, target_id, owner_id, operation_id=operation_id)
        )

    async def reject_suggestion(
        owner_id: str, note_id: str, target_id: str, operation_id: str | None = None
    ) -> Note:
        return await _handle(
            service.reject_suggestion(note_id, target_id, owner_id, operation_id=operation_id)
        )

    return accept_suggestion, reject_suggestion


def get_endpoints_router(*, service: KnowledgeService) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    async def health_check():
        return {"status": "healthy"}

    @router.post("/api/{owner_id}/notes/{note_id}/sync")
    async def sync_note(owner_id: str, note_id: str, operation_id: str | None = None) -> Note:
        return await _handle(service.sync_note(note_id, owner_id, operation_id=operation_id))

    @router.post(
        "/api/{owner_id}/notes/{note_id}/linked-notes", status_code=status.HTTP_201_CREATED
    )
    async def create_linked_note(
        owner_id: str, note_id: str, request: LinkedNoteRequest, operation_id: str | None = None
    ) -> Note:
        return await _handle(
            service.create_linked_note(
                note_id, request.topic, owner_id, operation_id=operation_id
            )
        )

    @router.delete("/api/{owner_id}/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_note(owner_id: str, note_id: str) -> None:
        await _handle(service.delete_note(note_id, owner_id))

    @router.post("/api/operations/{operation_id}/cancel")
    async def cancel_operation(operation_id: str):
        if not service.cancel(operation_id):
            raise HTTPException(status_code=404, detail=f"No running operation {operation_id}")
        return {"operation_id": operation_id, "cancelled": True}

    accept_suggestion, reject_suggestion = _create_decision_endpoints(service)
    router.get("/api/{owner_id}/notes/{note_id}/suggestions")(
        _create_suggestions_endpoint(service)
    )
    router.post("/api/{owner_id}/notes/{note_id}/suggestions/{target_id}/accept")(
        accept_suggestion
    )
    router.post("/api/{owner_id}/notes/{note_id}/suggestions/{target_id}/reject")(
        reject_suggestion
    )

    return router
