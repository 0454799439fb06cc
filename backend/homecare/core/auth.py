"""
Authentication seam for the billing API.

Authentication itself happens upstream. The gateway in front of this service
forwards the authenticated actor as two headers:

- ``X-Actor-Id``: identifier of the logged-in staff member
- ``X-Actor-Role``: ``administrator`` or ``operator``

Flask-Login's ``request_loader`` turns those headers into ``current_user``
for every request, and ``require_role`` restricts individual endpoints.

Examples:
    @calendar_bp.route("/analytics")
    @login_required
    @require_role(ROLE_ADMINISTRATOR)
    def analytics():
        ...
"""

import logging
from functools import wraps
from typing import Optional

from flask import jsonify
from flask_login import LoginManager, UserMixin, current_user

from homecare.core import config

logger = logging.getLogger(__name__)

ROLE_ADMINISTRATOR = "administrator"
ROLE_OPERATOR = "operator"
ALLOWED_ROLES = (ROLE_ADMINISTRATOR, ROLE_OPERATOR)

ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"


class Actor(UserMixin):
    """The staff member on whose behalf a request runs."""

    def __init__(self, actor_id: str, role: str):
        self.id = actor_id
        self.role = role

    @property
    def is_administrator(self) -> bool:
        return self.role == ROLE_ADMINISTRATOR

    def __repr__(self):
        return f"<Actor {self.id} ({self.role})>"


def load_actor_from_request(request) -> Optional[Actor]:
    """Build the current actor from the gateway headers, or None."""
    if not config.TRUSTED_ACTOR_HEADERS:
        return None

    actor_id = (request.headers.get(ACTOR_ID_HEADER) or "").strip()
    role = (request.headers.get(ACTOR_ROLE_HEADER) or "").strip().lower()
    if not actor_id:
        return None
    if role not in ALLOWED_ROLES:
        logger.warning(
            "Rejected actor with unknown role",
            extra={"context": {"actor_id": actor_id, "role": role}},
        )
        return None
    return Actor(actor_id, role)


def init_login_manager(app) -> LoginManager:
    """Attach a header-based Flask-Login manager to the app."""
    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        # Sessions are not used; every request carries its own headers.
        return None

    login_manager.request_loader(load_actor_from_request)

    @login_manager.unauthorized_handler
    def unauthorized():
        return (
            jsonify(
                {"success": False, "message": "Authentication required"}
            ),
            401,
        )

    return login_manager


def require_role(role: str):
    """Decorator restricting an endpoint to actors with ``role``.

    Returns:
        - 401 if no actor is authenticated
        - 403 if the actor has another role
    """

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user or not current_user.is_authenticated:
                return (
                    jsonify({"success": False, "message": "Authentication required"}),
                    401,
                )
            if getattr(current_user, "role", None) != role:
                logger.info(
                    "Access denied for role",
                    extra={
                        "context": {
                            "actor_id": getattr(current_user, "id", None),
                            "required_role": role,
                        }
                    },
                )
                return (
                    jsonify(
                        {
                            "success": False,
                            "message": f"Access restricted to the {role} role",
                        }
                    ),
                    403,
                )
            return f(*args, **kwargs)

        return decorated_function

    return decorator
