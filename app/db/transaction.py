import logging
from typing import Callable, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import AlreadyResolved, AppError, EnrollmentConflict, StorageFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_atomically(
    db: Session,
    work: Callable[[], T],
    what: str,
    on_integrity: Type[EnrollmentConflict] = AlreadyResolved,
) -> T:
    """Run ``work`` and commit; any failure rolls the whole unit back."""
    try:
        result = work()
        db.commit()
        return result
    except AppError as exc:
        db.rollback()
        logger.info("%s refused: %s", what, exc.message)
        raise
    except IntegrityError as exc:
        # outra transação gravou o mesmo vínculo antes (constraint unique)
        db.rollback()
        logger.info("%s lost a race: %s", what, exc.orig)
        raise on_integrity(f"{what} conflicts with a concurrent change") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("%s failed, rolled back", what)
        raise StorageFailure(f"{what} failed, nothing was saved") from exc
