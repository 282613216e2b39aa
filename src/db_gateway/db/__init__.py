"""
db_gateway.db

Persistence package: backend discovery, connection registry, cache and drivers.

Responsibilities:
- Turn `DB_<ABBR>_URL` environment entries into typed backend configs.
- Own one pooled driver per configured backend behind `DatabaseManager`.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The manager depends only on the `StoreDriver` interface, so a third engine can
# be added under `drivers/` without touching the read/write paths.
