from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .organizer import Organizer  # noqa: F401
from .tournament import Tournament, RuleConfig  # noqa: F401
from .competitor import Competitor  # noqa: F401
from .category import Category, Prize  # noqa: F401
from .allocation import AllocationVersion, Allocation  # noqa: F401
from .conflict import Conflict  # noqa: F401

__all__ = [
    "Base",
    "Organizer",
    "Tournament",
    "RuleConfig",
    "Competitor",
    "Category",
    "Prize",
    "AllocationVersion",
    "Allocation",
    "Conflict",
]
