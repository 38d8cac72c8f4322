"""
Repository pattern: data access abstraction over MongoDB collections.
"""

from .base import DEFAULT_RETRIED_OPERATIONS, OPERATIONS, IRepository, Predicate, Repository
from .entity import Entity, EntityLike, Hierarchical, HierarchicalEntity, HierarchicalMixin
from .exceptions import (
    EntityNotFoundError,
    HierarchyCycleError,
    HierarchyDepthExceededError,
    HierarchyError,
    InvalidArgumentError,
    RepositoryError,
)
from .hierarchical import MAX_LEVEL, HierarchicalRepository
from .retry import NO_RETRY, RetryPolicy, exponential_backoff, is_transient_connection_error, no_backoff

__all__ = [
    "IRepository",
    "Repository",
    "HierarchicalRepository",
    "Predicate",
    "OPERATIONS",
    "DEFAULT_RETRIED_OPERATIONS",
    "MAX_LEVEL",
    "Entity",
    "EntityLike",
    "Hierarchical",
    "HierarchicalEntity",
    "HierarchicalMixin",
    "RetryPolicy",
    "NO_RETRY",
    "no_backoff",
    "exponential_backoff",
    "is_transient_connection_error",
    "RepositoryError",
    "InvalidArgumentError",
    "EntityNotFoundError",
    "HierarchyError",
    "HierarchyDepthExceededError",
    "HierarchyCycleError",
]
