from typing import Iterator

from fastapi import Depends, Header, HTTPException
from fastapi.requests import HTTPConnection

from archiver.backends import Backend
from archiver.filestore import FileStore
from archiver.services.auth_service import AdminContext, SessionRegistry
from archiver.store.base import ArchiveStore


def get_backend(connection: HTTPConnection) -> Backend:
    return connection.app.state.backend


def get_sessions(connection: HTTPConnection) -> SessionRegistry:
    return connection.app.state.sessions


def get_store(backend: Backend = Depends(get_backend)) -> Iterator[ArchiveStore]:
    with backend.store() as store:
        yield store


def get_files(backend: Backend = Depends(get_backend)) -> FileStore:
    return backend.files


async def require_admin(
    authorization: str | None = Header(None),
    sessions: SessionRegistry = Depends(get_sessions),
) -> AdminContext:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    token = authorization[7:]
    username = sessions.validate(token)
    if username is None:
        raise HTTPException(status_code=401, detail="Session expired or invalid")
    return AdminContext(username=username, token=token)
