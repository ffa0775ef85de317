# permissions.py
"""Ownership authorization for listing and comment mutations.

``can_mutate`` is the single rule: only the resource's owner (the listing's
seller, the comment's author) may update or delete it. Route dependencies and
inline handler checks both go through ``authorize_mutation`` so they produce
the same 404/403 outcomes.
"""
import logging
from typing import Union

from fastapi import Depends
from sqlalchemy.orm import Session

import models
from auth import get_current_user
from database import get_db
from errors import Forbidden, NotFound

logger = logging.getLogger(__name__)

DENIAL_MESSAGES = {
    "listing": "Unauthorized. You do not own this listing.",
    "comment": "Unauthorized to delete this comment",
}

_MODELS = {
    "listing": models.Listing,
    "comment": models.Comment,
    "user": models.User,
}


def can_mutate(identity, resource) -> bool:
    return identity is not None and resource is not None and identity.id == resource.owner_id


def load_for_mutation(db: Session, kind: str, resource_id: int):
    """Fetch a resource with a row lock held until the request's transaction ends."""
    model = _MODELS[kind]
    return db.query(model).filter(model.id == resource_id).with_for_update().first()


def authorize_mutation(
    db: Session,
    identity: models.User,
    kind: str,
    resource: Union[models.Listing, models.Comment, int, None],
):
    """Resolve ``resource`` if needed and enforce ownership.

    An already-bound model instance is checked as is; a raw id is loaded once.
    Returns the bound resource so the caller mutates the object it checked.
    """
    model = _MODELS[kind]
    if resource is not None and not isinstance(resource, model):
        resource = load_for_mutation(db, kind, resource)
    if resource is None:
        raise NotFound(kind)
    if not can_mutate(identity, resource):
        logger.warning("User %s denied mutation of %s %s", identity.id, kind, resource.id)
        raise Forbidden(DENIAL_MESSAGES[kind])
    return resource


def require_listing_owner(
    listing_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> models.Listing:
    """Route-level guard for PUT/DELETE /listings/{listing_id}."""
    return authorize_mutation(db, current_user, "listing", listing_id)


def find_or_404(db: Session, kind: str, resource_id: int):
    model = _MODELS[kind]
    resource = db.query(model).filter(model.id == resource_id).first()
    if resource is None:
        raise NotFound(kind)
    return resource
