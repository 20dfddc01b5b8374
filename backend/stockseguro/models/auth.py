from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow, to_utc_z


class Worker(db.Model):
    """
    Store workers allowed through the login gate.

    WHY: Every sale and stock movement is attributed to a worker id.
    Workers are never deleted; deactivating one blocks login but keeps
    the history readable.
    """
    __tablename__ = "workers"
    __table_args__ = (
        db.UniqueConstraint("rut", name="uq_workers_rut"),
        db.UniqueConstraint("email", name="uq_workers_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # National id; the legacy login key
    rut = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(120), nullable=False)

    # Stored lower-cased so lookups are case-insensitive
    email = db.Column(db.String(255), nullable=False, index=True)

    # Bcrypt hashed PIN
    pin_hash = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_login_at = db.Column(db.DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Worker id={self.id} email={self.email!r} active={self.is_active}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "rut": self.rut,
            "name": self.name,
            "email": self.email,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at),
        }


class SessionToken(db.Model):
    """
    Login sessions for the presentation layer.

    Tokens are stored as SHA-256 hashes; the plaintext only ever lives
    on the client.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_worker_active", "worker_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=False, index=True)

    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_used_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime, nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    worker = db.relationship("Worker", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "worker_id": self.worker_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
