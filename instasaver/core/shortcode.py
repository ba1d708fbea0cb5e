"""Convert between Instagram shortcodes and numeric media ids."""

SHORTCODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
_BASE = len(SHORTCODE_ALPHABET)
_INDEX = {char: value for value, char in enumerate(SHORTCODE_ALPHABET)}


def shortcode_to_media_id(shortcode: str) -> int:
    """
    Decode a shortcode as a base-64 integer, most significant character first.

    Raises:
        ValueError: If the shortcode is empty or contains a foreign character
    """
    if not shortcode:
        raise ValueError("Empty shortcode")
    media_id = 0
    for char in shortcode:
        try:
            media_id = media_id * _BASE + _INDEX[char]
        except KeyError:
            raise ValueError(f"Invalid shortcode character {char!r} in {shortcode!r}") from None
    return media_id


def media_id_to_shortcode(media_id: int) -> str:
    """Inverse of ``shortcode_to_media_id`` (leading ``A`` digits are not reproduced)."""
    if media_id < 0:
        raise ValueError(f"Media id must be non-negative: {media_id}")
    if media_id == 0:
        return SHORTCODE_ALPHABET[0]
    chars = []
    while media_id:
        media_id, remainder = divmod(media_id, _BASE)
        chars.append(SHORTCODE_ALPHABET[remainder])
    return "".join(reversed(chars))
