import json
import os

from app.exceptions import ConfigurationError


def parse_permission_levels(raw: str | None) -> dict[str, int]:
    """
    Parse the PERMISSION_LEVELS override, e.g. '{"ALL": 100, "MANAGE_EVENTS": 25}'.
    An unset or empty value means no override.
    """
    if not raw:
        return {}
    try:
        levels = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"PERMISSION_LEVELS is not valid JSON: {e}") from e
    if not isinstance(levels, dict):
        raise ConfigurationError("PERMISSION_LEVELS must be a JSON object of name to level")
    for name, level in levels.items():
        if not isinstance(level, int) or isinstance(level, bool):
            raise ConfigurationError(
                f"PERMISSION_LEVELS: level of {name} must be an integer, got {level!r}"
            )
    return levels


db_url = os.environ.get("DB_URL", "sqlite://:memory:")
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")

# Required, the service refuses to start without it
jwt_secret = os.environ.get("JWT_SECRET", "")
jwt_algorithm = os.environ.get("JWT_ALGORITHM", "HS256")
jwt_ttl_seconds = int(os.environ.get("JWT_TTL_SECONDS", "86400"))

events_cache_ttl = int(os.environ.get("EVENTS_CACHE_TTL", "60"))

# Permission name -> level
permission_levels: dict[str, int] = {
    "ALL": 100,
    "MANAGE_PERMISSIONS": 40,
    "ADD_USER": 30,
    "MANAGE_EVENTS": 20,
    "MANAGE_BOOKINGS": 10,
    **parse_permission_levels(os.environ.get("PERMISSION_LEVELS")),
}
