from fastapi import Depends, Header
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.orm import Session
from typing import Optional
import logging

from taskinn.core.database import get_db
from taskinn.core.exceptions import AuthenticationError
from taskinn.core.security import verify_password
from taskinn.models.admin import AdminSettings

logger = logging.getLogger(__name__)

http_basic = HTTPBasic(auto_error=False)


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """
    Identity of the caller as established by the upstream session layer

    The session layer authenticates the user and forwards the id in the
    X-User-Id header; requests without it never reach a wallet.
    """
    if not x_user_id or not x_user_id.strip():
        raise AuthenticationError("Authentication required")
    return x_user_id.strip()


def get_current_admin(
    credentials: Optional[HTTPBasicCredentials] = Depends(http_basic),
    db: Session = Depends(get_db),
) -> AdminSettings:
    """Check HTTP Basic credentials against the admin settings record"""
    if credentials is None:
        raise AuthenticationError("Admin credentials required")

    admin_settings = db.query(AdminSettings).order_by(AdminSettings.id).first()
    if admin_settings is None:
        logger.warning("Admin login attempted before admin settings were created")
        raise AuthenticationError("Invalid admin credentials")

    if credentials.username != admin_settings.admin_username or not verify_password(
        credentials.password, admin_settings.admin_password_hash
    ):
        logger.warning(f"Failed admin login for username '{credentials.username}'")
        raise AuthenticationError("Invalid admin credentials")

    return admin_settings
