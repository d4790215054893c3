"""
Role resolution: one role per principal, derived once from the email address and stored.

The default rule (email contains the configured marker -> capture, else review) is
a product policy carried over from the first deployment. Anyone who can register an
address containing the marker becomes a capture operator.
"""
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from oralscan.core.config import settings
from oralscan.core.errors import IdentityUnavailable, PersistenceError
from oralscan.models import Role, UserProfile
from oralscan.schemas import Principal

logger = logging.getLogger(__name__)


def derive_default_role(email: str, marker: str | None = None) -> Role:
    marker = settings.capture_email_marker if marker is None else marker.strip().lower()
    if marker and marker in (email or "").lower():
        return Role.CAPTURE
    return Role.REVIEW


def _stored_role(db: Session, principal_id: str) -> Role | None:
    profile = db.get(UserProfile, principal_id)
    return Role(profile.role) if profile else None


def resolve_role(db: Session, principal: Principal, identity) -> Role:
    """Return the principal's role, provisioning it on first sight."""
    if not identity.confirm(principal):
        raise IdentityUnavailable(f"Identity provider could not confirm principal {principal.id}.")

    role = _stored_role(db, principal.id)
    if role is not None:
        return role

    role = derive_default_role(principal.email)
    db.add(
        UserProfile(
            id=principal.id,
            email=principal.email,
            role=role.value,
            full_name=principal.full_name or principal.email.split("@")[0],
        )
    )
    try:
        db.commit()
    except IntegrityError:
        # Another first login for the same principal stored its profile first; that one wins
        db.rollback()
        stored = _stored_role(db, principal.id)
        if stored is None:
            raise PersistenceError(f"Could not store or read the role for principal {principal.id}.")
        logger.info("role provisioning raced for principal=%s, using stored role=%s", principal.id, stored.value)
        return stored
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("role provisioning failed for principal=%s", principal.id)
        raise PersistenceError(f"Could not store the role for principal {principal.id}: {e.__class__.__name__}") from e
    logger.info("role provisioned: principal=%s role=%s", principal.id, role.value)
    return role
