"""Key encoding for NATS subjects: path segments become Base58 tokens."""

from __future__ import annotations

ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_INDEX = {ch: i for i, ch in enumerate(ALPHABET)}


class InvalidKeyError(ValueError):
    """Raised for keys that cannot be encoded."""

    def __init__(self, message: str = "invalid key") -> None:
        super().__init__(message)


def b58encode(data: bytes) -> str:
    """Encode bytes with the Bitcoin Base58 alphabet."""
    zeros = len(data) - len(data.lstrip(b"\x00"))
    number = int.from_bytes(data, "big")
    digits = []
    while number:
        number, rem = divmod(number, 58)
        digits.append(ALPHABET[rem])
    return ALPHABET[0] * zeros + "".join(reversed(digits))


def b58decode(text: str) -> bytes:
    """Decode a Bitcoin Base58 string; raises ValueError on bad characters."""
    number = 0
    for ch in text:
        try:
            number = number * 58 + _INDEX[ch]
        except KeyError:
            raise ValueError(f"invalid base58 character {ch!r}") from None
    zeros = len(text) - len(text.lstrip(ALPHABET[0]))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    return b"\x00" * zeros + body


class KeyCodec:
    """Turns ``/a/b/c`` style keys into ``.``-separated Base58 tokens."""

    def encode(self, key: str) -> str:
        if not key:
            raise InvalidKeyError()
        parts = key.strip("/").split("/")
        return ".".join(b58encode(part.encode("utf-8", "surrogateescape")) for part in parts)

    def decode(self, key: str) -> str:
        parts = [b58decode(token).decode("utf-8", "surrogateescape") for token in key.split(".")]
        return "/" + "/".join(parts)

    def encode_range(self, prefix: str) -> str:
        if prefix == "/":
            return ">"
        return f"{self.encode(prefix)}.>"