import pytest

from instasaver.core.shortcode import media_id_to_shortcode, shortcode_to_media_id

KNOWN_SHORTCODES = [
    ("B", 1),
    ("_", 63),
    ("BA", 64),
    ("__", 4095),
    ("Cabc12", 2590887286),
    ("CuFKWVGLmz4", 3135958230479301880),
    ("DMHs-9lNkJp", 3677105461547909737),
]


@pytest.mark.parametrize("shortcode,media_id", KNOWN_SHORTCODES)
def test_shortcode_to_media_id(shortcode, media_id):
    assert shortcode_to_media_id(shortcode) == media_id


@pytest.mark.parametrize("shortcode,media_id", KNOWN_SHORTCODES)
def test_media_id_to_shortcode(shortcode, media_id):
    assert media_id_to_shortcode(media_id) == shortcode


def test_decoding_is_deterministic():
    assert {shortcode_to_media_id("Cabc12") for _ in range(5)} == {2590887286}


def test_leading_zero_digit_is_dropped_on_encode():
    assert shortcode_to_media_id("AB") == 1
    assert media_id_to_shortcode(1) == "B"
    assert media_id_to_shortcode(0) == "A"


@pytest.mark.parametrize("bad", ["", "abc!", "with space"])
def test_invalid_shortcode(bad):
    with pytest.raises(ValueError):
        shortcode_to_media_id(bad)
