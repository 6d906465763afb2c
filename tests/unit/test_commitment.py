"""
Tests for bid commitments and the local secret store.

Tests cover:
1. Salt generation
2. BidSecret validation and serialization
3. SQLite key-value adapter
4. Secret store lifecycle
"""

import json

import pytest

from aloe.core.auction import BidSecret, generate_salt
from aloe.core.encoding import FIELD_MODULUS
from aloe.core.errors import ValidationError
from aloe.core.storage import SQLiteAdapter, SecretStore


# =============================================================================
# Salt Tests
# =============================================================================


class TestSalt:

    def test_salt_in_field(self):
        for _ in range(100):
            salt = generate_salt()
            assert 0 <= salt < FIELD_MODULUS
            assert salt < 2**128

    def test_salts_do_not_collide(self):
        salts = {generate_salt() for _ in range(10_000)}
        assert len(salts) == 10_000


# =============================================================================
# BidSecret Tests
# =============================================================================


class TestBidSecret:

    def test_deposit_must_cover_bid(self):
        with pytest.raises(ValidationError):
            BidSecret(auction_id="1", bid_amount=1000, salt=5, deposit=999)

    def test_salt_must_be_field_element(self):
        with pytest.raises(ValidationError):
            BidSecret(auction_id="1", bid_amount=1, salt=FIELD_MODULUS, deposit=1)

    def test_salt_must_be_int(self):
        with pytest.raises(ValidationError, match="salt must be int"):
            BidSecret(auction_id="1", bid_amount=1, salt="42", deposit=1)

    def test_auction_id_is_string(self):
        secret = BidSecret(auction_id=42, bid_amount=1, salt=5, deposit=1)
        assert secret.auction_id == "42"

    def test_salt_kept_as_string_in_dict(self):
        salt = 2**127 + 3
        secret = BidSecret(auction_id="1", bid_amount=10, salt=salt, deposit=20)
        data = secret.to_dict()
        assert data["salt"] == str(salt)
        assert BidSecret.from_dict(json.loads(json.dumps(data))) == secret

    def test_from_dict_accepts_field_literal(self):
        secret = BidSecret.from_dict(
            {"auction_id": "1", "bid_amount": "10", "salt": "99field", "deposit": 10}
        )
        assert secret.salt == 99
        assert secret.salt_literal == "99field"

    def test_from_dict_defaults_deposit_to_bid(self):
        secret = BidSecret.from_dict({"auction_id": "1", "bid_amount": 10, "salt": "5"})
        assert secret.deposit == 10
        assert not secret.revealed


# =============================================================================
# Storage Tests
# =============================================================================


class TestSQLiteAdapter:

    def test_put_get_remove(self, adapter):
        adapter.put("k", "v", bucket="b")
        assert adapter.get("k") == "v"
        assert adapter.remove("k")
        assert adapter.get("k") is None
        assert not adapter.remove("k")

    def test_overwrite(self, adapter):
        adapter.put("k", "one")
        adapter.put("k", "two")
        assert adapter.get("k") == "two"

    def test_keys_by_bucket(self, adapter):
        adapter.put("b2", "x", bucket="one")
        adapter.put("b1", "x", bucket="one")
        adapter.put("c1", "x", bucket="two")
        assert adapter.keys("one") == ["b1", "b2"]
        adapter.clear("one")
        assert adapter.keys("one") == []
        assert adapter.keys("two") == ["c1"]

    def test_persists_across_instances(self, tmp_path):
        db = tmp_path / "nested" / "aloe.db"
        first = SQLiteAdapter(db)
        first.put("k", "v")
        first.close()

        second = SQLiteAdapter(db)
        assert second.get("k") == "v"
        second.close()


class TestSecretStore:

    def test_put_get(self, secret_store):
        secret = BidSecret(auction_id="7", bid_amount=500000, salt=123, deposit=600000)
        secret_store.put("7", secret)

        loaded = secret_store.get("7")
        assert loaded == secret
        assert secret_store.has("7")

    def test_get_missing(self, secret_store):
        assert secret_store.get("404") is None
        assert not secret_store.has("404")

    def test_put_overwrites(self, secret_store):
        secret_store.put("7", BidSecret(auction_id="7", bid_amount=1, salt=1, deposit=1))
        secret_store.put("7", BidSecret(auction_id="7", bid_amount=2, salt=2, deposit=2))
        assert secret_store.get("7").bid_amount == 2

    def test_put_rejects_mismatched_id(self, secret_store):
        with pytest.raises(ValueError):
            secret_store.put("8", BidSecret(auction_id="7", bid_amount=1, salt=1, deposit=1))

    def test_mark_revealed(self, secret_store):
        secret_store.put("7", BidSecret(auction_id="7", bid_amount=1, salt=1, deposit=1))
        assert secret_store.mark_revealed("7").revealed
        assert secret_store.get("7").revealed

    def test_mark_revealed_missing(self, secret_store):
        assert secret_store.mark_revealed("404") is None

    def test_delete_idempotent(self, secret_store):
        secret_store.put("7", BidSecret(auction_id="7", bid_amount=1, salt=1, deposit=1))
        secret_store.delete("7")
        secret_store.delete("7")
        assert secret_store.get("7") is None

    def test_list_auction_ids(self, secret_store):
        for auction_id in ["3", "1", "2"]:
            secret_store.put(auction_id, BidSecret(auction_id=auction_id, bid_amount=1, salt=1, deposit=1))
        assert sorted(secret_store.list_auction_ids()) == ["1", "2", "3"]

    def test_survives_restart(self, tmp_path):
        db = tmp_path / "aloe.db"
        store = SecretStore(SQLiteAdapter(db))
        store.put("9", BidSecret(auction_id="9", bid_amount=10, salt=2**100, deposit=10))
        store.adapter.close()

        reopened = SecretStore(SQLiteAdapter(db))
        assert reopened.get("9").salt == 2**100
        reopened.adapter.close()
