"""
Middleware package for the rewards service.
"""
from .auth import (
    create_access_token,
    decode_access_token,
    get_current_actor_id,
    require_auth,
    require_role,
    require_admin,
)
