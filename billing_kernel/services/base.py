"""
BaseService -- abstract base for kernel services.

Services receive a SQLAlchemy ``Session`` from the caller and persist with
``session.flush()`` -- never ``session.commit()``.  The caller (a script,
the ingestion orchestrator or a test) owns the transaction, usually via
``billing_kernel.db.engine.session_scope``.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from billing_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
    """

    def __init__(self, session: Session):
        self.session = session
