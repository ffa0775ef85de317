# tests/test_permissions.py
from types import SimpleNamespace

import pytest

import models
from errors import Forbidden, NotFound
from permissions import authorize_mutation, can_mutate


def test_can_mutate_compares_identity_with_owner():
    owner = SimpleNamespace(id=7)
    listing = models.Listing(id=1, user_id=7)
    assert can_mutate(owner, listing)
    assert not can_mutate(SimpleNamespace(id=9), listing)
    assert not can_mutate(None, listing)
    assert not can_mutate(owner, None)


def test_comment_is_owned_by_its_author():
    comment = models.Comment(id=3, user_id=9, listing_id=1)
    comment.listing = models.Listing(id=1, user_id=7)
    assert comment.owner_id == 9
    assert not can_mutate(SimpleNamespace(id=7), comment)


def test_bound_resource_is_used_without_lookup():
    listing = models.Listing(id=1, user_id=7)
    # No session: a lookup would fail
    assert authorize_mutation(None, SimpleNamespace(id=7), "listing", listing) is listing


@pytest.mark.parametrize("kind,message", [
    ("listing", "Unauthorized. You do not own this listing."),
    ("comment", "Unauthorized to delete this comment"),
])
def test_denial_message_names_resource(kind, message):
    resource = models.Listing(id=1, user_id=7) if kind == "listing" else models.Comment(id=1, user_id=7)
    with pytest.raises(Forbidden) as exc:
        authorize_mutation(None, SimpleNamespace(id=9), kind, resource)
    assert exc.value.status_code == 403
    assert exc.value.detail == message


def test_missing_resource_is_not_found(db):
    with pytest.raises(NotFound) as exc:
        authorize_mutation(db, SimpleNamespace(id=1), "comment", 123)
    assert exc.value.status_code == 404
    assert exc.value.detail == "Comment not found"

    with pytest.raises(NotFound):
        authorize_mutation(db, SimpleNamespace(id=1), "listing", None)
