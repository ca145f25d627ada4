from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shopcore.errors import Conflict


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """
    Run a unit of work on the given Session and commit it as one transaction.
    Any exception rolls the whole unit back, so nothing partial is ever
    visible to other sessions. Unique/foreign-key violations surface as
    ``Conflict``.
    Usage:
        with atomic(db):
            ... DB work ...
    """
    try:
        yield session
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise Conflict(str(e.orig) if e.orig is not None else str(e)) from e
    except BaseException:
        session.rollback()
        raise
