import hashlib
from dataclasses import dataclass

from bonsai_sdk import ProofData, decode_receipt, get_seal_and_journal


@dataclass
class _Decoded:
    seal: bytearray
    journal: bytearray


class RecordingDecoder:
    def __init__(self):
        self.calls = []

    def __call__(self, receipt):
        self.calls.append(receipt)
        return _Decoded(seal=bytearray(receipt[:4]), journal=bytearray(receipt[4:]))


def test_get_seal_and_journal():
    decoder = RecordingDecoder()

    seal, journal = get_seal_and_journal(b"SEALjournal", decoder)

    assert decoder.calls == [b"SEALjournal"]
    assert seal == b"SEAL"
    assert journal == b"journal"
    assert isinstance(seal, bytes) and isinstance(journal, bytes)


def test_decode_receipt():
    proof = decode_receipt(bytearray(b"SEALjournal"), RecordingDecoder())

    assert proof == ProofData(seal=b"SEAL", journal=b"journal")
    assert proof.journal_hash == "0x" + hashlib.sha256(b"journal").hexdigest()
