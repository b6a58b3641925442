"""
Admin settings: commission rate and admin credentials
"""

import logging
import math
from typing import Optional

from sqlalchemy.orm import Session

from taskinn.core.exceptions import ConflictError, ValidationError
from taskinn.core.security import get_password_hash
from taskinn.models.admin import AdminSettings

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def _validate_password(password: str) -> str:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            code="PASSWORD_TOO_SHORT",
        )
    return password


def _validate_commission_rate(rate: float) -> float:
    if not math.isfinite(rate) or rate < 0 or rate >= 1:
        raise ValidationError("Commission rate must be at least 0 and below 1", code="INVALID_COMMISSION_RATE")
    return float(rate)


def create_admin_settings(
    db: Session,
    username: str,
    password: str,
    commission_rate: float,
    email: Optional[str] = None,
) -> AdminSettings:
    """Seed the settings singleton; refuses to create a second row"""
    if db.query(AdminSettings).first() is not None:
        raise ConflictError("Admin settings already exist", code="SETTINGS_ALREADY_EXIST")

    admin_settings = AdminSettings(
        admin_username=username.strip(),
        admin_password_hash=get_password_hash(_validate_password(password)),
        commission_rate=_validate_commission_rate(commission_rate),
        admin_email=email.strip() if email else None,
    )
    db.add(admin_settings)
    db.commit()
    db.refresh(admin_settings)
    logger.info(f"Created admin settings for '{admin_settings.admin_username}'")
    return admin_settings


def update_admin_settings(
    db: Session,
    admin_settings: AdminSettings,
    username: Optional[str] = None,
    password: Optional[str] = None,
    commission_rate: Optional[float] = None,
    email: Optional[str] = None,
) -> AdminSettings:
    """Apply the provided fields; all checks run before anything is written"""
    if username is not None and not username.strip():
        raise ValidationError("Username cannot be empty", code="INVALID_USERNAME")
    if password is not None:
        _validate_password(password)
    if commission_rate is not None:
        commission_rate = _validate_commission_rate(commission_rate)

    if username is not None:
        admin_settings.admin_username = username.strip()
    if password is not None:
        admin_settings.admin_password_hash = get_password_hash(password)
    if commission_rate is not None:
        logger.info(f"Commission rate changed from {admin_settings.commission_rate} to {commission_rate}")
        admin_settings.commission_rate = commission_rate
    if email is not None:
        admin_settings.admin_email = email.strip() or None

    db.commit()
    db.refresh(admin_settings)
    return admin_settings
