from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import List, Optional

from app.core.logging_config import get_logger
from app.utils.response_utils import ResponseWrapper

from .utils import verify_token

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)


class PermissionChecker:
    """
    Admin session gate.

    Accepts a bearer token whose ``user_type`` is ``admin`` and whose
    ``permissions`` include at least one of ``required_permissions``
    (``"*"`` grants everything).
    """

    def __init__(self, required_permissions: List[str]):
        self.required_permissions = required_permissions

    async def __call__(self, credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)):
        if credentials is None or not credentials.credentials:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=ResponseWrapper.error(
                    message="Authentication required",
                    error_code="UNAUTHORIZED",
                ),
                headers={"WWW-Authenticate": "Bearer"},
            )

        try:
            user_data = verify_token(credentials.credentials)
        except HTTPException as e:
            logger.warning(f"Rejected bearer token: {e.detail}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=ResponseWrapper.error(message=str(e.detail), error_code="INVALID_TOKEN"),
                headers={"WWW-Authenticate": "Bearer"},
            )

        if user_data.get("user_type") != "admin":
            logger.warning(f"Non-admin user {user_data.get('user_id')} denied for {self.required_permissions}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=ResponseWrapper.error(message="Admin access required", error_code="FORBIDDEN"),
            )

        user_permissions = user_data.get("permissions", [])
        if "*" not in user_permissions and not any(p in user_permissions for p in self.required_permissions):
            logger.warning(
                f"Permission denied. Required: {self.required_permissions}, User has: {user_permissions}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=ResponseWrapper.error(message="Insufficient permissions", error_code="FORBIDDEN"),
            )

        return user_data
