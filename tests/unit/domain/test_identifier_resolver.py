from __future__ import annotations

import pytest

from marketfeed_api.domain.entities.asset_record import AssetRecord
from marketfeed_api.domain.entities.internal_id import InternalId, Provider
from marketfeed_api.domain.services.identifier_resolver import (
    RECORD_RULES,
    migrate_legacy_id,
    resolve,
    resolve_string,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("cg:bitcoin", "cg:bitcoin"),
        ("yahoo:AAPL", "yahoo:AAPL"),
        ("tase:662577", "tase:662577"),
        ("AAPL", "yahoo:AAPL"),
        ("^GSPC", "yahoo:^GSPC"),
        ("  MSFT ", "yahoo:MSFT"),
        ("662577", "tase:662577"),
    ],
)
def test_resolve_string_canonical_and_bare(raw: str, expected: str) -> None:
    iid = resolve_string(raw)
    assert iid is not None
    assert str(iid) == expected


@pytest.mark.parametrize("legacy", ["yahoo:1183441", "yahoo:1183441.TA", "1183441", "1183441.TA"])
def test_legacy_tase_forms_migrate_to_tase_prefix(legacy: str) -> None:
    assert migrate_legacy_id(legacy) == "tase:1183441"
    assert resolve_string(legacy) == InternalId(Provider.TASE, "1183441")


def test_migration_is_idempotent() -> None:
    once = migrate_legacy_id("yahoo:1183441.TA")
    assert migrate_legacy_id(once) == once
    assert migrate_legacy_id("cg:bitcoin") == "cg:bitcoin"


def test_yahoo_symbols_with_letters_are_not_migrated() -> None:
    assert migrate_legacy_id("yahoo:POLI.TA") == "yahoo:POLI.TA"
    assert resolve_string("POLI.TA") == InternalId(Provider.YAHOO, "POLI.TA")


@pytest.mark.parametrize("raw", ["", "   ", "tase:abc", "cg:", "yahoo:  "])
def test_unresolvable_strings_return_none(raw: str) -> None:
    assert resolve_string(raw) is None


def test_resolve_none_is_none() -> None:
    assert resolve(None) is None


def test_parse_round_trips_through_str() -> None:
    iid = InternalId.parse("tase:1183441")
    assert InternalId.parse(str(iid)) == iid
    assert iid.is_tase and not iid.is_crypto


def test_coingecko_slugs_are_lowercased_other_symbols_keep_case() -> None:
    assert InternalId.parse("cg:Bitcoin") == InternalId(Provider.COINGECKO, "bitcoin")
    assert str(resolve_string(" cg:ETHEREUM ")) == "cg:ethereum"
    assert str(resolve_string("yahoo:brk-b")) == "yahoo:brk-b"


def test_internal_id_rejects_non_numeric_tase_symbol() -> None:
    with pytest.raises(ValueError):
        InternalId(Provider.TASE, "POLI")


# --------------------------------------------------------------------------- #
# Record rules
# --------------------------------------------------------------------------- #


def test_record_rule_order_is_stable() -> None:
    assert [r.name for r in RECORD_RULES] == [
        "explicit-prefixed-id",
        "crypto",
        "tase",
        "default-yahoo",
    ]


def test_explicit_prefixed_api_id_wins() -> None:
    iid = resolve({"apiId": "cg:ethereum", "symbol": "ETH", "currency": "ILS"})
    assert str(iid) == "cg:ethereum"


def test_legacy_prefixed_api_id_is_migrated() -> None:
    assert str(resolve({"apiId": "yahoo:1183441.TA"})) == "tase:1183441"


def test_crypto_flag_beats_ils_currency() -> None:
    iid = resolve({"symbol": "BTC", "type": "CRYPTO", "currency": "ILS", "securityId": "1183441"})
    assert str(iid) == "cg:bitcoin"


def test_crypto_category_label_with_unmapped_ticker_lowercases() -> None:
    iid = resolve({"symbol": "XYZ", "category": "קריפטו"})
    assert str(iid) == "cg:xyz"


def test_coingecko_source_uses_coingecko_id() -> None:
    iid = resolve({"marketDataSource": "coingecko", "coingeckoId": "solana"})
    assert str(iid) == "cg:solana"


def test_tase_local_source_uses_extra_security_number() -> None:
    iid = resolve(
        {"marketDataSource": "tase-local", "symbol": "POLI", "extra": {"securityNumber": "662577"}}
    )
    assert str(iid) == "tase:662577"


def test_ils_currency_with_numeric_symbol_is_tase() -> None:
    assert str(resolve({"symbol": "1183441.TA", "apiId": "1183441", "currency": "ILS"})) == (
        "tase:1183441"
    )


def test_default_rule_routes_to_yahoo() -> None:
    assert str(resolve({"symbol": "MSFT"})) == "yahoo:MSFT"
    assert str(resolve(AssetRecord(api_id="^GSPC"))) == "yahoo:^GSPC"


def test_empty_record_is_unresolvable() -> None:
    assert resolve({}) is None
    assert resolve({"symbol": "   "}) is None
