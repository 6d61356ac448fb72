import pytest

from ndc_calculator.services.ndc import (
    detect_input_type,
    is_product_ndc,
    normalize_ndc,
    product_ndc,
    product_ndc_variants,
    same_ndc,
)


@pytest.mark.parametrize("raw, expected", [
    ("0071-0155-23", "00071-0155-23"),
    ("12345-678-90", "12345-0678-90"),
    ("12345-6789-1", "12345-6789-01"),
    ("00071-0155-23", "00071-0155-23"),
    ("00071015523", "00071-0155-23"),
    ("0071015523", "00071-0155-23"),
    (" 00071 0155 23 ", "00071-0155-23"),
    ("12345678", "00012-3456-78"),
])
def test_normalize_ndc(raw, expected):
    assert normalize_ndc(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", "123", "123456789012", "1-2-3-4", "0071-0155-23x"])
def test_normalize_rejects_garbage(raw):
    assert normalize_ndc(raw) is None


def test_ten_digit_padding_is_a_policy():
    assert normalize_ndc("0071015523", pad_ten_digit=False) is None
    assert normalize_ndc("0071-0155-23", pad_ten_digit=False) == "00071-0155-23"


def test_same_ndc():
    assert same_ndc("0071-0155-23", "00071015523")
    assert not same_ndc("0071-0155-23", "0071-0155-24")
    assert not same_ndc(None, "0071-0155-23")


def test_product_ndc_helpers():
    assert is_product_ndc("0071-0155")
    assert not is_product_ndc("0071-0155-23")
    assert product_ndc("0071-0155-23") == "00071-0155"
    assert product_ndc_variants("0071-0155-23") == ["00071-0155", "0071-0155", "00071-155"]
    assert product_ndc_variants("12345-6789-01") == ["12345-6789"]
    assert product_ndc_variants("0071-0155") == ["00071-0155", "0071-0155", "00071-155"]
    assert product_ndc_variants("00071-0155") == ["00071-0155", "0071-0155", "00071-155"]
    assert product_ndc_variants("0071-155") == ["00071-0155", "0071-0155", "00071-155"]
    assert product_ndc_variants("12345-6789") == ["12345-6789"]
    assert product_ndc_variants("nope") == []


@pytest.mark.parametrize("value, expected", [
    ("Lisinopril 10 mg", "drug"),
    ("0071-0155-23", "ndc"),
    ("00071015523", "ndc"),
    ("5-FU", "drug"),
    ("-0071", "ndc"),
    ("", "unknown"),
    ("   ", "unknown"),
    ("!!!", "unknown"),
    (None, "unknown"),
])
def test_detect_input_type(value, expected):
    assert detect_input_type(value) == expected
