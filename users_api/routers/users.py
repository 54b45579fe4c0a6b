from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Request, Response
from fastapi.responses import JSONResponse

from users_api.services.user_service import UserService, UserServiceError

router = APIRouter(prefix="/users", tags=["users"])


def _get_user_service(request: Request) -> UserService:
    svc = getattr(getattr(request.app, "state", None), "user_service", None)
    if not svc:
        raise RuntimeError("UserService not configured")
    return svc


def _error_response(exc: UserServiceError) -> JSONResponse:
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


@router.get("")
def list_users(request: Request):
    svc = _get_user_service(request)
    return svc.list_users(dict(request.query_params))


# Declared before "/{user_id}" so "search" is not captured as an id.
@router.get("/search")
def search_users(request: Request, q: str | None = None):
    svc = _get_user_service(request)
    try:
        return svc.search_users(q)
    except UserServiceError as exc:
        return _error_response(exc)


@router.get("/{user_id}")
def get_user(user_id: str, request: Request):
    svc = _get_user_service(request)
    try:
        return svc.get_user(user_id)
    except UserServiceError as exc:
        return _error_response(exc)


@router.post("", status_code=201)
def create_user(request: Request, payload: Any = Body(None)):
    svc = _get_user_service(request)
    try:
        return svc.create_user(payload)
    except UserServiceError as exc:
        return _error_response(exc)


@router.put("/{user_id}")
def update_user(user_id: str, request: Request, payload: Any = Body(None)):
    svc = _get_user_service(request)
    try:
        return svc.update_user(user_id, payload)
    except UserServiceError as exc:
        return _error_response(exc)


@router.delete("/{user_id}", status_code=204)
def delete_user(user_id: str, request: Request):
    svc = _get_user_service(request)
    try:
        svc.delete_user(user_id)
    except UserServiceError as exc:
        return _error_response(exc)
    return Response(status_code=204)
