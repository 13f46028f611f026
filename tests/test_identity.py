"""Tests for customer key parsing and identity resolution."""
from decimal import Decimal

import pytest

from services.exceptions import InvalidIdentityError
from services.identity import (
    CallerIdentity,
    CustomerIdentity,
    CustomerKey,
    KeyKind,
    resolve_identity,
)
from services.award_service import award_order_points
from services.balance_service import get_balance
from tests.factories import make_profile


class TestCustomerKey:
    """Tagged key rendering and parsing"""

    def test_render(self):
        assert str(CustomerKey.legacy(7)) == "legacy:7"
        assert str(CustomerKey.external("abc")) == "external:abc"

    def test_parse_round_trip(self):
        key = CustomerKey.parse("external:auth0|42")
        assert key.kind is KeyKind.EXTERNAL
        assert key.value == "auth0|42"

    @pytest.mark.parametrize("raw", ["", "legacy", "legacy:", "email:a@b.c", "legacy:abc", "legacy:-3", "legacy:7x"])
    def test_parse_rejects_malformed(self, raw):
        with pytest.raises(InvalidIdentityError):
            CustomerKey.parse(raw)


class TestCustomerIdentity:
    """Canonical key selection"""

    def test_legacy_is_canonical_when_known(self):
        identity = CustomerIdentity(legacy_id=7, external_id="abc")
        assert identity.key == "legacy:7"
        assert identity.keys() == ["legacy:7", "external:abc"]

    def test_external_only(self):
        identity = CustomerIdentity(external_id="abc")
        assert identity.key == "external:abc"

    def test_no_key_is_rejected(self):
        with pytest.raises(InvalidIdentityError):
            CustomerIdentity()

    def test_from_key(self):
        assert CustomerIdentity.from_key("legacy:7") == CustomerIdentity(legacy_id=7)

    def test_from_key_non_numeric_legacy(self):
        with pytest.raises(InvalidIdentityError):
            CustomerIdentity.from_key("legacy:abc")


class TestResolveIdentity:
    """Resolution against customer profiles"""

    def test_caller_without_keys_is_rejected(self, db):
        with pytest.raises(InvalidIdentityError):
            resolve_identity(db, CallerIdentity())

    def test_unlinked_caller_keeps_own_key(self, db):
        identity = resolve_identity(db, CallerIdentity(external_id="xyz"))
        assert identity.key == "external:xyz"
        assert identity.legacy_id is None

    def test_profile_link_maps_external_to_legacy(self, db):
        make_profile(db, legacy_user_id=7, external_user_id="abc")

        by_external = resolve_identity(db, CallerIdentity(external_id="abc"))
        by_legacy = resolve_identity(db, CallerIdentity(legacy_id=7))

        assert by_external.key == "legacy:7"
        assert by_external == by_legacy

    def test_linked_keys_see_same_balance(self, db):
        make_profile(db, legacy_user_id=7, external_user_id="abc")
        via_legacy = resolve_identity(db, CallerIdentity(legacy_id=7))
        award_order_points(db, via_legacy, order_id=1, total=Decimal("30.00"))

        via_external = resolve_identity(db, CallerIdentity(external_id="abc"))
        assert get_balance(db, via_external).points == 80
        assert get_balance(db, via_legacy).points == 80
