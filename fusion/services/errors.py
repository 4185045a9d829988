"""Errors raised by the data access layer and their user-facing wording."""

import logging
from contextlib import contextmanager
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from fusion import db

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"

GENERIC_MESSAGE = "Não foi possível concluir a operação. Tente novamente."

_MESSAGES = {
    UNIQUE_VIOLATION: "Este e-mail já está cadastrado.",
    FOREIGN_KEY_VIOLATION: "Erro de permissão no banco de dados (FK). Contate o suporte.",
}


class RemoteOperationError(Exception):
    """A store operation was rejected.

    ``code`` carries the SQLSTATE-style code reported by the store when one
    could be determined (``23505`` duplicated key, ``23503`` foreign key).
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code

    @property
    def user_message(self) -> str:
        return translate_error(self)


class NotFoundError(RemoteOperationError):
    def __init__(self, resource: str, resource_id):
        super().__init__(f"{resource} {resource_id} não encontrado", code="not_found")
        self.resource = resource
        self.resource_id = resource_id


def _extract_code(exc: SQLAlchemyError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    for attr in ("pgcode", "sqlstate"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)

    text = str(orig if orig is not None else exc)
    lowered = text.lower()
    # SQLite and MySQL do not expose SQLSTATE through their DBAPI errors.
    if "unique constraint failed" in lowered or "duplicate entry" in lowered:
        return UNIQUE_VIOLATION
    if "foreign key" in lowered:
        return FOREIGN_KEY_VIOLATION
    if isinstance(exc, IntegrityError):
        return "23000"
    return None


def from_db_error(exc: SQLAlchemyError) -> RemoteOperationError:
    message = str(getattr(exc, "orig", None) or exc)
    return RemoteOperationError(message, code=_extract_code(exc))


def translate_error(error: Exception) -> str:
    """Best-effort user wording for a store error."""
    code = getattr(error, "code", None)
    if code in _MESSAGES:
        return _MESSAGES[code]
    if isinstance(error, NotFoundError):
        return error.message
    return GENERIC_MESSAGE


@contextmanager
def remote_operation(name: str):
    """Commit-or-rollback scope translating database failures.

    Everything inside the block runs in the current session; on success the
    session is committed, on failure it is rolled back and the error is
    re-raised as :class:`RemoteOperationError`.
    """
    try:
        yield db.session
        db.session.commit()
    except RemoteOperationError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        error = from_db_error(exc)
        logger.warning("%s falhou (code=%s): %s", name, error.code, error.message)
        raise error from exc
    except Exception:
        db.session.rollback()
        raise
