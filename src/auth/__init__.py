from .schemas import Actor, ActorRole
from .dependencies import get_current_actor, require_admin

__all__ = ["Actor", "ActorRole", "get_current_actor", "require_admin"]
