from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


@contextmanager
def smart_transaction(session: Session) -> Iterator[Session]:
    """
    Run a unit of work that is either its own transaction or a SAVEPOINT.

    Inside an open transaction (e.g. a credit note transition) the block runs
    in begin_nested(): an exception rolls back only the block and the caller
    may carry on and commit. Otherwise begin() commits on exit.
    """
    nested = session.in_transaction()
    with (session.begin_nested() if nested else session.begin()):
        yield session
