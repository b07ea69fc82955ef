from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.errors import AuctionEngineError, InternalError


@contextmanager
def unit_of_work(session: Session, operation: str) -> Iterator[Session]:
    """Commit on success; roll back on any failure.

    Engine errors propagate unchanged. Database errors become ``InternalError``
    so callers can tell a retryable failure from a rejected request.
    """

    try:
        yield session
        session.commit()
    except AuctionEngineError:
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("{} failed and was rolled back", operation)
        raise InternalError(f"{operation} failed; no changes were saved") from exc
    except Exception:
        session.rollback()
        raise
