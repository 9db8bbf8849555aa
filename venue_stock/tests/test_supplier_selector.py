import math

from venue_stock.services.supplier_selector import SupplierPriceOption, choose_cheapest


def test_contract_wins_price_tie():
    options = [
        SupplierPriceOption(supplier_id="s1", price=10.0, is_contract=False),
        SupplierPriceOption(supplier_id="s2", price=10.0, is_contract=True),
    ]
    assert choose_cheapest(options).supplier_id == "s2"


def test_lowest_price_wins():
    options = [
        SupplierPriceOption(supplier_id="s1", price=12.5),
        SupplierPriceOption(supplier_id="s2", price=10.0),
        SupplierPriceOption(supplier_id="s3", price=11.0),
    ]
    assert choose_cheapest(options).supplier_id == "s2"


def test_empty_or_all_invalid_returns_none():
    assert choose_cheapest([]) is None
    assert choose_cheapest(None) is None
    assert choose_cheapest(
        [
            SupplierPriceOption(supplier_id="s1", price=math.nan),
            SupplierPriceOption(supplier_id="s2", price=None),
            SupplierPriceOption(supplier_id="s3", price="n/a"),
            SupplierPriceOption(supplier_id="s4", price=""),
        ]
    ) is None


def test_invalid_entries_are_skipped_not_fatal():
    options = [
        SupplierPriceOption(supplier_id="bad", price=math.inf),
        SupplierPriceOption(supplier_id="ok", price="9.5"),
    ]
    assert choose_cheapest(options).supplier_id == "ok"


def test_full_tie_keeps_input_order():
    options = [
        SupplierPriceOption(supplier_id="first", price=4, is_contract=True),
        SupplierPriceOption(supplier_id="second", price=4, is_contract=True),
    ]
    assert choose_cheapest(options).supplier_id == "first"
    assert choose_cheapest(list(reversed(options))).supplier_id == "second"
