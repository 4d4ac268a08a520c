"""User roles used by route guards."""
import logging
from enum import StrEnum

logger = logging.getLogger(__name__)


class Role(StrEnum):
    """Capabilities a principal can hold."""

    USER = "user"
    ADMIN = "admin"


# Higher rank includes every capability of the lower ranks
ROLE_RANK: dict[Role, int] = {
    Role.USER: 0,
    Role.ADMIN: 1,
}


def get_role_safely(role_value: str | None) -> Role:
    """
    Safely convert a stored string to a Role, defaulting to USER on unknown values.

    Args:
        role_value: The role string from the database.

    Returns:
        The corresponding Role, or Role.USER if unknown.
    """
    try:
        return Role(role_value)
    except ValueError:
        logger.warning("Unknown role value '%s', defaulting to USER role", role_value)
        return Role.USER


def has_role(role_value: str | None, required: Role) -> bool:
    """Return True if the stored role grants at least the required capability."""
    return ROLE_RANK[get_role_safely(role_value)] >= ROLE_RANK[required]
