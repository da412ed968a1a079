from fastapi import APIRouter, Depends, HTTPException

from archiver.dependencies import get_sessions, require_admin
from archiver.schemas.auth import AdminResponse, LoginRequest, LoginResponse
from archiver.services.auth_service import AdminContext, SessionRegistry, authorize

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
def login(req: LoginRequest, sessions: SessionRegistry = Depends(get_sessions)):
    username = authorize(req.username, req.password)
    if username is None:
        raise HTTPException(status_code=401, detail="Invalid username or password")
    token = sessions.issue(username)
    return LoginResponse(token=token, expires_in_seconds=sessions.ttl_seconds)


@router.post("/logout")
async def logout(
    admin: AdminContext = Depends(require_admin),
    sessions: SessionRegistry = Depends(get_sessions),
):
    sessions.revoke(admin.token)
    return {"message": "Logged out"}


@router.get("/me", response_model=AdminResponse)
async def me(admin: AdminContext = Depends(require_admin)):
    return AdminResponse(username=admin.username)
