# Overview: Opaque login tokens for workers; issue, check and revoke.

"""
Worker sessions.

After login the front end holds a random token and sends it as a Bearer
header; require_auth resolves it to a worker here. Only the SHA-256 of
a token is stored, so a leaked table cannot be replayed.

A session dies when any of these hold:
- it is older than SESSION_ABSOLUTE_TIMEOUT_HOURS
- it was unused for SESSION_IDLE_TIMEOUT_MINUTES (revoked on sight)
- its worker was deactivated (revoked on sight)
- it was logged out
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, Worker
from ..time_utils import utcnow

REASON_LOGOUT = "Logout"
REASON_IDLE = "Idle timeout"
REASON_WORKER_INACTIVE = "Worker deactivated"


@dataclass
class SessionContext:
    worker: Worker
    session: SessionToken


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    # Tokens carry 256 random bits, so a fast digest is enough here
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _find_live(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter(SessionToken.token_hash == hash_token(token), SessionToken.is_revoked.is_(False))
        .first()
    )


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def create_session(worker_id: int) -> tuple[SessionToken, str]:
    """
    Open a session for an active worker.

    Returns (row, plaintext token); the plaintext is never stored.
    Raises ValueError for an unknown or inactive worker.
    """
    worker = db.session.get(Worker, worker_id)
    if worker is None or not worker.is_active:
        raise ValueError("Worker not found or inactive")

    token = generate_token()
    now = utcnow()
    lifetime = timedelta(hours=current_app.config["SESSION_ABSOLUTE_TIMEOUT_HOURS"])

    row = SessionToken(
        worker_id=worker.id,
        token_hash=hash_token(token),
        created_at=now,
        last_used_at=now,
        expires_at=now + lifetime,
        is_revoked=False,
    )
    db.session.add(row)
    db.session.commit()
    current_app.logger.info("Session opened for worker %s", worker.id)
    return row, token


def validate_session(token: str) -> SessionContext | None:
    """Resolve a token to its worker, touching last_used_at; None if the session is dead."""
    row = _find_live(token)
    if row is None:
        return None

    now = utcnow()
    if row.expires_at < now:
        return None

    idle_limit = timedelta(minutes=current_app.config["SESSION_IDLE_TIMEOUT_MINUTES"])
    if now - row.last_used_at > idle_limit:
        _revoke(row, REASON_IDLE)
        return None

    worker = row.worker
    if worker is None or not worker.is_active:
        _revoke(row, REASON_WORKER_INACTIVE)
        return None

    row.last_used_at = now
    db.session.commit()
    return SessionContext(worker=worker, session=row)


def revoke_session(token: str, reason: str = REASON_LOGOUT) -> bool:
    """True if a live session was revoked."""
    row = _find_live(token)
    if row is None:
        return False
    _revoke(row, reason)
    return True
