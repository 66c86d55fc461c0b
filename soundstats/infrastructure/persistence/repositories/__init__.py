"""Database repositories for the listening history engine."""

from .catalog import CatalogRepository
from .leases import TaskLeaseRepository
from .listening_history import ListeningHistoryRepository
from .uploads import StreamingUploadRepository
from .users import UserRepository

__all__ = [
    "CatalogRepository",
    "ListeningHistoryRepository",
    "StreamingUploadRepository",
    "TaskLeaseRepository",
    "UserRepository",
]
