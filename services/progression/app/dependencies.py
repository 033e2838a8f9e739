from app.config import Settings
from shared.auth.dependencies import get_current_user_optional, get_current_user_required, require_role
from shared.constants import Role


def get_settings() -> Settings:
    return Settings()


get_current_user = get_current_user_required
require_instructor = require_role(Role.INSTRUCTOR)
require_admin = require_role(Role.ADMIN)

__all__ = [
    "get_current_user",
    "get_current_user_optional",
    "get_settings",
    "require_admin",
    "require_instructor",
]
