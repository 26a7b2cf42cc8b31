"""ORM model package."""

from orgboard.models.entities import StoredDocument

__all__ = ["StoredDocument"]
