"""Repository interfaces for the domain layer."""

from .interfaces import (
    CatalogRepositoryProtocol,
    ListeningHistoryRepositoryProtocol,
    StreamingUploadRepositoryProtocol,
    TaskLeaseRepositoryProtocol,
    UnitOfWorkFactory,
    UnitOfWorkProtocol,
    UserRepositoryProtocol,
)

__all__ = [
    "CatalogRepositoryProtocol",
    "ListeningHistoryRepositoryProtocol",
    "StreamingUploadRepositoryProtocol",
    "TaskLeaseRepositoryProtocol",
    "UnitOfWorkFactory",
    "UnitOfWorkProtocol",
    "UserRepositoryProtocol",
]
