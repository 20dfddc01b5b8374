# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Worker Authentication Service

WHY: Every sale and stock movement must be attributable to a worker.
Workers log in with email + PIN; PINs are bcrypt hashed.

The write engines do not authenticate. They receive an already
authenticated worker id and only check that it resolves to an active
worker (get_active_worker).

SECURITY NOTES:
- PINs hashed with bcrypt (cost factor 10)
- PIN must be 4-12 digits
- Email lookups are case-insensitive; emails are stored lower-cased
- Unknown email and wrong PIN return the same message
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import Worker
from ..time_utils import utcnow
from ..validation import ConflictError, ValidationError
from .results import OperationResult, CODE_VALIDATION, CODE_BUSINESS_RULE, CODE_INTERNAL

PIN_PATTERN = re.compile(r"^\d{4,12}$")


class PinValidationError(ValidationError):
    """Raised when a PIN doesn't meet format requirements."""


def normalize_email(email) -> str:
    return str(email or "").strip().lower()


def validate_pin(pin: str) -> None:
    if not isinstance(pin, str) or not PIN_PATTERN.match(pin):
        raise PinValidationError("PIN must be 4 to 12 digits")


def hash_pin(pin: str) -> str:
    """
    Hash PIN using bcrypt.

    PIN is validated for format before hashing.
    """
    validate_pin(pin)
    salt = bcrypt.gensalt(rounds=10)
    hashed = bcrypt.hashpw(pin.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_pin(pin: str, pin_hash: str) -> bool:
    """
    Verify PIN against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash counts as a
    mismatch.
    """
    try:
        return bcrypt.checkpw(pin.encode('utf-8'), pin_hash.encode('utf-8'))
    except ValueError:
        return False


def create_worker(*, rut: str, name: str, email: str, pin: str) -> Worker:
    """
    Create new worker with bcrypt PIN hashing.

    Raises:
        ValidationError: blank fields or malformed PIN
        ConflictError: rut or email already registered
    """
    rut = str(rut or "").strip()
    name = str(name or "").strip()
    email = normalize_email(email)

    if not rut:
        raise ValidationError("rut is required")
    if not name:
        raise ValidationError("name is required")
    if not email or "@" not in email:
        raise ValidationError("a valid email is required")

    pin_hash = hash_pin(pin)

    existing = (
        db.session.query(Worker)
        .filter(db.or_(Worker.rut == rut, db.func.lower(Worker.email) == email))
        .first()
    )
    if existing:
        raise ConflictError("A worker with that RUT or email already exists.")

    worker = Worker(rut=rut, name=name, email=email, pin_hash=pin_hash, is_active=True)
    db.session.add(worker)
    db.session.commit()
    return worker


def get_active_worker(worker_id) -> Worker | None:
    if not worker_id or isinstance(worker_id, bool):
        return None
    try:
        worker_id = int(worker_id)
    except (TypeError, ValueError):
        return None
    worker = db.session.get(Worker, worker_id)
    if worker is None or not worker.is_active:
        return None
    return worker


def set_worker_active(worker_id: int, is_active: bool) -> Worker | None:
    worker = db.session.get(Worker, worker_id)
    if worker is None:
        return None
    worker.is_active = is_active
    db.session.commit()
    return worker


def authenticate(email, pin) -> OperationResult:
    """
    Check an email + PIN pair.

    Returns OperationResult with data={"worker": {...}} on success.
    """
    try:
        email = normalize_email(email)
        pin = str(pin or "").strip()

        if not email:
            return OperationResult.failure("Please enter your email.", CODE_VALIDATION)
        if not pin:
            return OperationResult.failure("Please enter your password.", CODE_VALIDATION)

        worker = (
            db.session.query(Worker)
            .filter(db.func.lower(Worker.email) == email)
            .first()
        )
        if worker is None:
            return OperationResult.failure("Invalid credentials.", CODE_BUSINESS_RULE)
        if not worker.is_active:
            return OperationResult.failure("User is inactive.", CODE_BUSINESS_RULE)
        if not verify_pin(pin, worker.pin_hash):
            return OperationResult.failure("Invalid credentials.", CODE_BUSINESS_RULE)

        worker.last_login_at = utcnow()
        db.session.commit()
        return OperationResult.success(worker={
            "id": worker.id,
            "name": worker.name,
            "email": worker.email,
            "rut": worker.rut,
        })
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Login failed with an internal error")
        return OperationResult.failure("Internal error.", CODE_INTERNAL)
