"""Profile service — local profile rows for identity-provider principals."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import Profile, ProfileRole
from ..schemas.auth import Principal
from .guard import find_profile

log = logging.getLogger("wedstay.profiles")


def ensure_profile(db: Session, principal: Principal) -> Profile:
    """Return the principal's Profile, creating a customer profile on first sign-in."""
    profile = find_profile(db, principal.auth_id)
    if profile is not None:
        return profile

    profile = Profile(
        auth_id=principal.auth_id,
        email=principal.email,
        full_name=principal.full_name,
        role=ProfileRole.CUSTOMER,
    )
    db.add(profile)
    try:
        db.commit()
    except IntegrityError:
        # First-sign-in race: another request created it
        db.rollback()
        existing = find_profile(db, principal.auth_id)
        if existing is None:
            raise
        return existing
    db.refresh(profile)
    log.info(f"Profile created for {profile.email} (#{profile.id})")
    return profile
