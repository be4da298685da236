"""
Encryption Classifier: does a stored value look like an envelope?

This is a heuristic used to keep batch encryption idempotent. It is not a
security boundary: a plaintext crafted as ``hex:hex:hex`` with the right
segment lengths is indistinguishable from ciphertext here.
"""
from typing import Any

from ..conf import ACCEPTED_NONCE_SIZES, TAG_SIZE
from ..exceptions import MalformedEnvelopeError
from .envelope import split_segments


def looks_encrypted(value: Any, nonce_sizes: tuple[int, ...] = ACCEPTED_NONCE_SIZES) -> bool:
    """Return True if ``value`` is shaped like an envelope token.

    Args:
        value: Any stored field value.
        nonce_sizes: Nonce lengths (in bytes) that count as plausible.
    """
    if not isinstance(value, str) or not value:
        return False
    try:
        nonce, tag, _ciphertext = split_segments(value)
    except MalformedEnvelopeError:
        return False
    return len(nonce) // 2 in nonce_sizes and len(tag) // 2 == TAG_SIZE
