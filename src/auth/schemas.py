from pydantic import BaseModel
from enum import Enum

class ActorRole(str, Enum):
    """Role asserted by the upstream gateway"""
    CLIENT = "client"
    ADMIN = "admin"
    PILOT = "pilot"

class Actor(BaseModel):
    """Identity of the caller triggering an operation"""
    user_id: int
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN
