from typing import Optional

from rintrack.schemas.common import CamelModel


class LoginRequest(CamelModel):
    id_token: Optional[str] = None


class RoleOut(CamelModel):
    role: Optional[str] = None
    status: Optional[str] = None
