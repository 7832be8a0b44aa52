"""
Signed URL helper for API responses.
Turns stored object keys into time-limited retrieval links.
"""
from typing import Optional, Tuple

import config
from core.logger import logger


def get_signed_url(store, key: Optional[str], expires_in: Optional[int] = None) -> Tuple[Optional[str], bool]:
    """
    Mint a signed URL for an object key.

    Returns:
        Tuple of (url, signed). When minting fails the raw key is returned
        with signed=False so one bad record never fails a whole listing.
    """
    if not key or not str(key).strip():
        return None, False
    try:
        url = store.get_presigned_url(key.strip(), expires_in=expires_in or config.SIGNED_URL_EXPIRES_SECONDS)
        return url, True
    except Exception as e:
        logger.warning(f"Signed URL failed for {key}: {e}")
        return key, False
