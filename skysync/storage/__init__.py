"""
SkySync Storage

User and flight records keyed by phone number.
"""

import os

from skysync.storage.users import UserStore, utc_today


def store_from_env() -> UserStore:
    """Build a UserStore from SUPABASE_URL / SUPABASE_SERVICE_KEY."""
    return UserStore(
        os.environ.get("SUPABASE_URL", ""),
        os.environ.get("SUPABASE_SERVICE_KEY", ""),
    )


__all__ = ["UserStore", "store_from_env", "utc_today"]
