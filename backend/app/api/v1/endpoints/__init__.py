# API endpoints
from . import auth, invites, memberships, societies, core, head, recruitment, admin, health

__all__ = ["auth", "invites", "memberships", "societies", "core", "head", "recruitment", "admin", "health"]
