"""
Bonsai SDK - Receipt decoding

Receipts are downloaded as bincode-serialized bytes. Turning them into a
seal and a journal is the job of an external decoder (for example a wasm or
native build of the risc0 receipt converter); this module only defines the
contract such a decoder must meet.
"""

import hashlib
from dataclasses import dataclass
from typing import Any, Protocol, Tuple


class ReceiptDecoder(Protocol):
    """Callable that decodes serialized receipt bytes.

    The returned object must expose ``seal`` and ``journal`` attributes.
    """

    def __call__(self, receipt: bytes) -> Any: ...


@dataclass
class ProofData:
    """Seal and journal extracted from a receipt."""

    seal: bytes
    journal: bytes

    @property
    def journal_hash(self) -> str:
        """Get SHA256 hash of journal."""
        return "0x" + hashlib.sha256(self.journal).hexdigest()


def decode_receipt(receipt: bytes, decoder: ReceiptDecoder) -> ProofData:
    """Run ``decoder`` over ``receipt`` and normalize its output."""
    decoded = decoder(bytes(receipt))
    return ProofData(seal=bytes(decoded.seal), journal=bytes(decoded.journal))


def get_seal_and_journal(receipt: bytes, decoder: ReceiptDecoder) -> Tuple[bytes, bytes]:
    """
    Extract the seal and journal from a serialized receipt.

    Args:
        receipt: Receipt bytes as returned by ``receipt_download``
        decoder: External receipt decoder

    Returns:
        ``(seal, journal)``
    """
    proof = decode_receipt(receipt, decoder)
    return proof.seal, proof.journal
