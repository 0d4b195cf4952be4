"""Route registration helpers."""

from .admin import register_admin_routes
from .tasks import register_task_routes
from .users import register_user_routes

__all__ = [
    "register_admin_routes",
    "register_task_routes",
    "register_user_routes",
]
