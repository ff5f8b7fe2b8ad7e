"""
Tests for BoxNow unit normalization (weight, money, phone, payment mode).
"""
import pytest

from app.services.normalizers import (
    MAX_PARCEL_WEIGHT_KG,
    compartment_size_for_weight,
    map_payment_mode,
    normalize_phone,
    parse_weight_kg,
    resolve_total_weight,
    safe_money,
    to_amount,
)


class TestParseWeight:
    @pytest.mark.parametrize("raw,expected", [
        ("0,22kg", 0.22),
        ("0.22 kg", 0.22),
        ("220g", 0.22),
        ("220 gr", 0.22),
        ("1,5 KG", 1.5),
        ("2 kilos", 2.0),
        ("750 grams", 0.75),
    ])
    def test_unit_suffix_always_yields_kilograms(self, raw, expected):
        assert parse_weight_kg(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw,expected", [
        (3, 3.0),
        (50, 50.0),
        (51, 0.051),
        (220, 0.22),
        ("1500", 1.5),
        ("2,5", 2.5),
    ])
    def test_unitless_numbers_above_50_are_read_as_grams(self, raw, expected):
        # Ambiguous by construction: a real 60 kg value would become 0.06 kg
        assert parse_weight_kg(raw) == pytest.approx(expected)

    def test_default_unit_kg_disables_heuristic(self):
        assert parse_weight_kg(60, default_unit="kg") == 60.0

    @pytest.mark.parametrize("raw", [None, "", "abc", "-1", 0, -2.5, True, float("nan"), float("inf"), {}])
    def test_unusable_input_is_zero(self, raw):
        assert parse_weight_kg(raw) == 0.0


class TestResolveTotalWeight:
    def test_explicit_total_wins(self):
        items = [{"weight": 1, "quantity": 5}]
        assert resolve_total_weight("2kg", items) == 2.0

    def test_sums_item_weight_times_quantity(self):
        items = [
            {"weight": "0,5kg", "quantity": 2},
            {"weight": 250, "quantity": 2},
            {"weightKg": 1},
        ]
        assert resolve_total_weight(None, items) == pytest.approx(2.5)

    def test_total_is_not_rounded(self):
        assert resolve_total_weight("12.0004kg") == pytest.approx(12.0004)
        assert resolve_total_weight(None, [{"weightKg": 4.0002, "quantity": 3}]) == pytest.approx(12.0006)

    def test_bad_quantity_counts_once(self):
        assert resolve_total_weight(None, [{"weight": 1, "quantity": "x"}]) == 1.0

    def test_nothing_usable_is_zero(self):
        assert resolve_total_weight(None, [{"name": "comic"}]) == 0.0
        assert resolve_total_weight(None, None) == 0.0


class TestMoney:
    @pytest.mark.parametrize("raw,expected", [
        (12, "12.00"),
        ("12,5", "12.50"),
        (10.005, "10.01"),
        (None, "0.00"),
        ("abc", "0.00"),
        (-4, "0.00"),
    ])
    def test_safe_money(self, raw, expected):
        assert safe_money(raw) == expected

    def test_to_amount_rounds_half_up(self):
        assert to_amount("2.675") == 2.68


class TestNormalizePhone:
    @pytest.mark.parametrize("raw,expected", [
        ("6912345678", "+306912345678"),
        ("691 234 5678", "+306912345678"),
        ("306912345678", "+306912345678"),
        ("+30 691-234-5678", "+306912345678"),
        ("2101234567", "+302101234567"),
        ("+44 7700 900123", "+447700900123"),
    ])
    def test_international(self, raw, expected):
        assert normalize_phone(raw) == expected

    def test_digits_mode_strips_everything_else(self):
        assert normalize_phone("+30 691-234-5678", "digits") == "306912345678"
        assert normalize_phone("6912345678", "digits") == "6912345678"

    @pytest.mark.parametrize("raw", [None, "", "   ", "+", "n/a"])
    def test_no_digits_is_empty(self, raw):
        assert normalize_phone(raw) == ""


class TestPaymentMode:
    @pytest.mark.parametrize("label", ["cod", "COD", "cash_on_delivery", "Cash on delivery", "boxnow_cod", "pay_on_go"])
    def test_cod_labels(self, label):
        assert map_payment_mode(label) == "cod"

    @pytest.mark.parametrize("label", ["card", "stripe", "PayPal", "bank_transfer", "prepaid"])
    def test_prepaid_labels(self, label):
        assert map_payment_mode(label) == "prepaid"

    @pytest.mark.parametrize("label", [None, "", "crypto", "voucher", 42])
    def test_unknown_labels_fail_open_to_prepaid(self, label):
        assert map_payment_mode(label) == "prepaid"


class TestCompartmentSize:
    @pytest.mark.parametrize("weight,size", [(0.1, 2), (5.0, 2), (5.001, 3), (MAX_PARCEL_WEIGHT_KG, 3)])
    def test_two_tiers(self, weight, size):
        assert compartment_size_for_weight(weight) == size
