"""
Configuration constants for the Neoflix catalog service.

Values are read once at import time from environment variables; invalid
values fall back to their defaults with a warning.
"""
import os
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def _get_float_env(key: str, default: float, min_val: float = 0) -> float:
    """
    Safely parse float from environment variable with validation.

    Args:
        key: Environment variable name
        default: Default value if not set or invalid
        min_val: Minimum allowed value

    Returns:
        Validated float value
    """
    try:
        val = float(os.environ.get(key, default))
        if val < min_val:
            logger.warning(f"{key}={val} is below minimum {min_val}, using {min_val}")
            return min_val
        return val
    except ValueError:
        logger.warning(f"Invalid {key}='{os.environ.get(key)}', using default {default}")
        return default


def _get_int_env(key: str, default: int, min_val: int = 1) -> int:
    """
    Safely parse integer from environment variable with validation.

    Args:
        key: Environment variable name
        default: Default value if not set or invalid
        min_val: Minimum allowed value

    Returns:
        Validated integer value
    """
    try:
        val = int(os.environ.get(key, default))
        if val < min_val:
            logger.warning(f"{key}={val} is below minimum {min_val}, using {min_val}")
            return min_val
        return val
    except ValueError:
        logger.warning(f"Invalid {key}='{os.environ.get(key)}', using default {default}")
        return default


# Neo4j Connection
NEO4J_URI = os.environ.get("NEO4J_URI", "neo4j://localhost:7687")
NEO4J_USERNAME = os.environ.get("NEO4J_USERNAME", "neo4j")
NEO4J_PASSWORD = os.environ.get("NEO4J_PASSWORD", "")
NEO4J_DATABASE = os.environ.get("NEO4J_DATABASE") or None  # None = server default

# Driver tuning
MAX_CONNECTION_POOL_SIZE = _get_int_env("NEOFLIX_MAX_CONNECTION_POOL_SIZE", 50, min_val=1)
CONNECTION_TIMEOUT = _get_float_env("NEOFLIX_CONNECTION_TIMEOUT", 30.0, min_val=1.0)

# Pagination
DEFAULT_LIMIT = _get_int_env("NEOFLIX_DEFAULT_LIMIT", 100, min_val=0)
DEFAULT_SKIP = 0

# Genre that marks movies without any real genre; never listed
NO_GENRE_SENTINEL = "(no genres listed)"

# Fixtures (offline/demo data and seeding)
FIXTURES_PATH = Path(os.environ.get("NEOFLIX_FIXTURES", Path(__file__).parent / "data"))
SEED_BATCH_SIZE = _get_int_env("NEOFLIX_SEED_BATCH_SIZE", 500, min_val=1)
