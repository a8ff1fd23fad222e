"""ORM models for progressive_dx_db."""

from progressive_dx_db.models.base import Base
from progressive_dx_db.models.session import PredictionSession

__all__ = ["Base", "PredictionSession"]
