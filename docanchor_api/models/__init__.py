"""Database models - import all models here for Alembic discovery."""

from docanchor_api.models.anchor import AnchorSubmission
from docanchor_api.models.document import RegisteredDocument

__all__ = [
    "AnchorSubmission",
    "RegisteredDocument",
]
