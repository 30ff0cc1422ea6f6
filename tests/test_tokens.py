"""Tests for button interaction tokens."""

from __future__ import annotations

import pytest

from license_bot.core.tokens import (
    CollectionAction,
    InteractionToken,
    InvalidTokenError,
    LicenseAction,
    Namespace,
    collection_token,
    license_token,
)


class TestEncode:

    def test_four_part_form(self):
        token = InteractionToken("lic", "terms", "abc123", "user42")
        assert token.encode() == "lic:terms:abc123:user42"

    def test_enum_members_encode_to_values(self):
        token = InteractionToken(Namespace.COLLECTION, CollectionAction.DISPUTES, "0xabc", "U1")
        assert token.encode() == "col:disputes:0xabc:U1"

    def test_helpers(self):
        assert license_token(LicenseAction.MINT, "ip1", "U1") == "lic:mint:ip1:U1"
        assert collection_token(CollectionAction.SHOW, "0xabc", "U1") == "col:show:0xabc:U1"


class TestDecode:

    def test_round_trip(self):
        token = InteractionToken.decode("lic:terms:abc123:user42")
        assert token == InteractionToken("lic", "terms", "abc123", "user42")
        assert token.encode() == "lic:terms:abc123:user42"

    @pytest.mark.parametrize("custom_id", ["", "lic", "lic:terms", "lic:terms:abc123"])
    def test_fewer_than_four_parts(self, custom_id):
        with pytest.raises(InvalidTokenError):
            InteractionToken.decode(custom_id)

    def test_invalid_token_error_is_value_error(self):
        with pytest.raises(ValueError):
            InteractionToken.decode("nope")

    def test_legacy_five_part_form(self):
        token = InteractionToken.decode("lic:terms:full:abc123:user42")
        assert token.namespace == "lic"
        assert token.action == "terms"
        assert token.target_id == "abc123"
        assert token.owner_id == "user42"

    def test_empty_owner(self):
        token = InteractionToken.decode("col:show:0xabc:")
        assert token.owner_id == ""


class TestOwnership:

    def test_owner_matches(self):
        assert InteractionToken("lic", "terms", "ip", "U1").is_owned_by("U1") is True

    def test_other_user(self):
        assert InteractionToken("lic", "terms", "ip", "U1").is_owned_by("U2") is False

    def test_empty_owner_allows_anyone(self):
        assert InteractionToken("lic", "terms", "ip", "").is_owned_by("U2") is True
