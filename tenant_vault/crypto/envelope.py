"""
Envelope Codec: (nonce, tag, ciphertext) to and from one text token.

Format::

    hex(nonce) ":" hex(tag) ":" hex(ciphertext)

Hex never contains ``:``, so the format needs no length prefixes.
"""
import re
from dataclasses import dataclass

from ..conf import ENVELOPE_DELIMITER
from ..exceptions import MalformedEnvelopeError

_HEX_SEGMENT = re.compile(r"(?:[0-9a-fA-F]{2})+")


def split_segments(token: str) -> list[str]:
    """Split a token into its three hex segments.

    Raises:
        MalformedEnvelopeError: Unless there are exactly three non-empty,
            even-length hex segments.
    """
    if not isinstance(token, str):
        raise MalformedEnvelopeError(
            f"Envelope must be a string, got {type(token).__name__}"
        )
    parts = token.split(ENVELOPE_DELIMITER)
    if len(parts) != 3:
        raise MalformedEnvelopeError(
            f"Envelope must have 3 segments, got {len(parts)}"
        )
    for name, part in zip(("nonce", "tag", "ciphertext"), parts):
        if not _HEX_SEGMENT.fullmatch(part):
            raise MalformedEnvelopeError(f"Envelope {name} segment is not valid hex")
    return parts


@dataclass(frozen=True)
class Envelope:
    """One encrypted value: nonce, GCM tag and ciphertext (tag excluded)."""

    nonce: bytes
    tag: bytes
    ciphertext: bytes

    def encode(self) -> str:
        return encode_envelope(self.nonce, self.tag, self.ciphertext)

    @classmethod
    def decode(cls, token: str) -> "Envelope":
        nonce, tag, ciphertext = (bytes.fromhex(p) for p in split_segments(token))
        return cls(nonce=nonce, tag=tag, ciphertext=ciphertext)


def encode_envelope(nonce: bytes, tag: bytes, ciphertext: bytes) -> str:
    """Serialize the triple into a storable token."""
    if not nonce or not tag or not ciphertext:
        raise MalformedEnvelopeError("Envelope segments cannot be empty")
    return ENVELOPE_DELIMITER.join((nonce.hex(), tag.hex(), ciphertext.hex()))


def decode_envelope(token: str) -> Envelope:
    """Parse a token produced by :func:`encode_envelope`."""
    return Envelope.decode(token)
