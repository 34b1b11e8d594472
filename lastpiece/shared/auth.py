from typing import Optional

from fastapi import Depends, Header, Request

from lastpiece.shared.database import Database, require_db
from lastpiece.shared.helpers import is_object_id, to_object_id
from lastpiece.shared.utils import ForbiddenException, UnauthorizedException, verify_token

ROLE_CUSTOMER = "customer"
ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "super-admin"
ROLES = (ROLE_CUSTOMER, ROLE_ADMIN, ROLE_SUPER_ADMIN)


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    db: Database = Depends(require_db),
) -> dict:
    """Resolve the bearer token to the stored user document."""
    if not authorization:
        raise UnauthorizedException("Not authorized, no token")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise UnauthorizedException("Invalid authentication credentials")

    payload = verify_token(token)
    user_id = payload.get("sub")
    if not user_id or not is_object_id(user_id):
        raise UnauthorizedException("Not authorized, token failed")

    user = await db.users.find_one({"_id": to_object_id(user_id)}, {"password": 0})
    if not user:
        raise UnauthorizedException("User not found")
    if user.get("status") == "blocked":
        raise ForbiddenException("Your account has been blocked")

    user["id"] = str(user["_id"])
    request.state.user_id = user["id"]
    return user


def require_roles(*roles: str):
    async def checker(user: dict = Depends(get_current_user)) -> dict:
        if user.get("role") not in roles:
            raise ForbiddenException(f"User role '{user.get('role')}' is not authorized to access this route")
        return user
    return checker


require_admin = require_roles(ROLE_ADMIN, ROLE_SUPER_ADMIN)
require_super_admin = require_roles(ROLE_SUPER_ADMIN)
