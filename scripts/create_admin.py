#!/usr/bin/env python3
"""
Script to provision a study administrator: an identity user plus an admin profile.
Prints an access token for the new administrator.
"""
import sys
from datetime import timedelta
from pathlib import Path

# Add parent directory to the system path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.exc import SQLAlchemyError

from auth.identity import IdentityProvider
from database.connection import Database
from database.models import Profile, ParticipationStatus
import config


def create_admin():
    """Create an administrator profile."""
    database = Database(
        database_url=config.DATABASE_URL,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW
    )
    database.create_tables()
    identity = IdentityProvider(config.AUTH_JWT_SECRET, audience=config.AUTH_JWT_AUDIENCE)

    print("Creating study administrator...")
    print("=" * 50)

    email = input("Email: ").strip()
    user_id = input("Identity user id (leave blank to generate): ").strip() or None

    if not email:
        print("Error: Email is required")
        sys.exit(1)

    user = identity.create_confirmed_user(email, user_id=user_id)
    try:
        with database.get_session() as db:
            profile = db.query(Profile).filter(Profile.user_id == user.id).first()
            if profile is None:
                profile = Profile(
                    user_id=user.id,
                    email=user.email,
                    is_admin=True,
                    participation_status=ParticipationStatus.ACTIVE.value,
                )
                db.add(profile)
            else:
                profile.is_admin = True
            db.flush()
            profile_id = profile.id
    except SQLAlchemyError as e:
        print(f"\n✗ Database error: {e}")
        sys.exit(1)
    finally:
        database.dispose()

    token = identity.issue_access_token(user, expires_delta=timedelta(days=1))
    print(f"\n✓ Administrator ready!")
    print(f"  User id: {user.id}")
    print(f"  Email: {user.email}")
    print(f"  Profile id: {profile_id}")
    print(f"  Access token (24h): {token}")


if __name__ == "__main__":
    create_admin()
