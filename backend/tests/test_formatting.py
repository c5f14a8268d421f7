"""
Unit Tests for Client Formatting

Run with: pytest tests/test_formatting.py -v
"""

import pytest

from services.attributes import ClientAttribute
from services.clients import ClientRecord
from services.formatting import ClientFormatter, mask_mobile, normalize_mobile, extract_attributes
from services.phone_lookup import PhoneLookupResult
from utils.encryption import DecryptionError


class TestMaskMobile:

    @pytest.mark.parametrize("number, masked", [
        ("+447946000939", "+********0939"),
        ("+44 20 7946 0939", "+** ** **** 0939"),
        ("0939", "0939"),
        ("939", "939"),
        ("", ""),
    ])
    def test_mask(self, number, masked):
        assert mask_mobile(number) == masked

    def test_length_preserved(self):
        number = "+44 20-7946-0939"

        assert len(mask_mobile(number)) == len(number)
        assert mask_mobile(number).endswith("0939")

    def test_custom_visible_count(self):
        assert mask_mobile("+447946000939", visible=2) == "+**********39"


class TestNormalizeMobile:

    def test_strips_whitespace(self):
        assert normalize_mobile("+44 20 7946 0939") == "+442079460939"

    def test_keeps_dashes(self):
        assert normalize_mobile("+44 20-7946-0939") == "+4420-7946-0939"

    def test_prefers_lookup_number(self):
        lookup = PhoneLookupResult(reachable=True, valid=True, region_code="GB", normalized_number="+442079460939")

        assert normalize_mobile("+44 20-7946-0939", lookup) == "+442079460939"

    def test_ignores_unreachable_lookup(self):
        assert normalize_mobile("+44 20 7946 0939", PhoneLookupResult(reachable=False)) == "+442079460939"


def test_extract_attributes_skips_fixed_fields():
    attributes = extract_attributes({
        "id": "x",
        "email": "a@b.com",
        "mobile": "+447946000939",
        "town": "York",
        "age": 42,
    })

    assert attributes == [ClientAttribute("town", "York"), ClientAttribute("age", 42)]


class TestClientFormatter:

    def test_format_public(self, encryption):
        formatter = ClientFormatter(encryption)
        record = ClientRecord(
            id="abc",
            email="a@b.com",
            mobile=encryption.encrypt("+442079460939"),
            attributes=[ClientAttribute("town", "York")]
        )

        view = formatter.format_public(record)

        assert view == {"id": "abc", "email": "a@b.com", "mobile": "+********0939", "town": "York"}

    def test_fixed_fields_win_over_attributes(self, encryption):
        formatter = ClientFormatter(encryption)
        record = ClientRecord(
            id="abc",
            email="a@b.com",
            mobile=encryption.encrypt("+442079460939"),
            attributes=[
                ClientAttribute("email", "spoof@evil.com"),
                ClientAttribute("mobile", "+440000000000"),
                ClientAttribute("id", "other"),
            ]
        )

        view = formatter.format_public(record)

        assert view == {"id": "abc", "email": "a@b.com", "mobile": "+********0939"}

    def test_undecryptable_mobile_raises(self, encryption):
        formatter = ClientFormatter(encryption)
        record = ClientRecord(id="abc", email="a@b.com", mobile="deadbeef")

        with pytest.raises(DecryptionError):
            formatter.format_public(record)

    def test_encrypt_mobile_normalizes(self, encryption):
        formatter = ClientFormatter(encryption)

        assert formatter.encrypt_mobile("+44 20 7946 0939") == encryption.encrypt("+442079460939")
