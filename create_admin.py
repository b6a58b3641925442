#!/usr/bin/env python3
"""
Create Admin Settings Script
Seeds the admin account and commission rate for the TaskInn admin dashboard
"""

import sys

from taskinn.core.config import settings
from taskinn.core.database import SessionLocal, engine, Base
from taskinn.core.exceptions import TaskInnError
from taskinn.services.admin_settings_service import create_admin_settings, MIN_PASSWORD_LENGTH

# Import all models to ensure they are registered with SQLAlchemy
import taskinn.models  # noqa: F401


def create_admin(username: str, password: str, commission_rate: float, email: str = None) -> bool:
    """Create the admin settings row"""

    # Create tables if they don't exist
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()

    try:
        admin_settings = create_admin_settings(db, username, password, commission_rate, email)

        print("=" * 60)
        print("✅ Admin Settings Created Successfully!")
        print("=" * 60)
        print(f"ID:               {admin_settings.id}")
        print(f"Username:         {admin_settings.admin_username}")
        print(f"Email:            {admin_settings.admin_email or '-'}")
        print(f"Commission Rate:  {admin_settings.commission_rate * 100:.2f}%")
        print(f"Created At:       {admin_settings.created_at}")
        print("=" * 60)
        print("\n📝 Admin endpoints use HTTP Basic authentication:")
        print(f"   Username: {admin_settings.admin_username}")
        print("   Password: (as entered)")
        print("=" * 60)

        return True

    except TaskInnError as e:
        db.rollback()
        print(f"❌ Error: {e.message}")
        return False
    finally:
        db.close()


def main():
    """Main function"""
    print("=" * 60)
    print("TaskInn - Create Admin Settings")
    print("=" * 60)
    print()

    # Get username
    if len(sys.argv) > 1:
        username = sys.argv[1]
    else:
        username = input("Enter admin username: ").strip()

    if not username:
        print("❌ Error: Username is required!")
        sys.exit(1)

    # Get password
    if len(sys.argv) > 2:
        password = sys.argv[2]
    else:
        password = input("Enter admin password: ").strip()

    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"❌ Error: Password must be at least {MIN_PASSWORD_LENGTH} characters!")
        sys.exit(1)

    # Get commission rate
    if len(sys.argv) > 3:
        raw_rate = sys.argv[3]
    else:
        raw_rate = input(f"Enter commission rate [{settings.DEFAULT_COMMISSION_RATE}]: ").strip()

    try:
        commission_rate = float(raw_rate) if raw_rate else settings.DEFAULT_COMMISSION_RATE
    except ValueError:
        print(f"❌ Error: '{raw_rate}' is not a number!")
        sys.exit(1)

    email = sys.argv[4] if len(sys.argv) > 4 else None

    print()

    if create_admin(username, password, commission_rate, email):
        sys.exit(0)
    else:
        sys.exit(1)


if __name__ == "__main__":
    main()
