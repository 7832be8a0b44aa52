"""
Object key generation for study uploads.

All keys live under a profile-id prefix, so two profiles never share a
namespace:
    {profile_id}/week-4-1718000000000-3f9a2c1d.jpg
"""
import secrets
import time
from typing import Optional


def profile_prefix(profile_id: str) -> str:
    """{profile_id}/"""
    return f"{profile_id}/"


def upload_object_key(
    profile_id: str,
    week_number: int,
    extension: str = ".jpg",
    timestamp_ms: Optional[int] = None
) -> str:
    """
    Build a collision-resistant key for an uploaded image.

    A millisecond timestamp plus a random token means repeated uploads in the
    same week never overwrite each other.
    """
    ts = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    ext = extension if extension.startswith(".") else f".{extension}"
    return f"{profile_prefix(profile_id)}week-{week_number}-{ts}-{secrets.token_hex(4)}{ext}"
