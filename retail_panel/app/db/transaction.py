from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    Une opération métier = une transaction.

    Commit si le bloc se termine normalement, rollback complet sinon : aucune
    réservation/restauration partielle ne survit à une erreur au milieu d'une
    vente multi-lignes. Les verrous FOR UPDATE sont tenus jusqu'au commit.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
