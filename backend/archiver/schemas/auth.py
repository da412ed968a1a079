from archiver.schemas.common import CamelModel


class LoginRequest(CamelModel):
    username: str | None = None
    password: str | None = None


class LoginResponse(CamelModel):
    token: str
    expires_in_seconds: int


class AdminResponse(CamelModel):
    username: str
