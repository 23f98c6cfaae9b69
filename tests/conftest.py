"""Fixtures that build small BAM files byte-by-byte."""
from __future__ import annotations

import gzip
import struct
from pathlib import Path

import pytest

_FIXED = struct.Struct("<iiBBHHHIiii")


def record_bytes(
    ref_id: int = 0,
    mate_ref_id: int = 0,
    tlen: int = 100,
    flag: int = 0x43,
    name: bytes = b"read1",
    n_cigar: int = 1,
    l_seq: int = 5,
    aux: bytes = b"",
    block_size: int | None = None,
) -> bytes:
    """Encode one BAM record, including its block_size prefix."""
    qname = name + b"\x00"
    fixed = _FIXED.pack(
        ref_id, 1000, len(qname), 60, 4680, n_cigar, flag, l_seq,
        mate_ref_id, 1200, tlen,
    )
    cigar = struct.pack("<I", (l_seq << 4) | 0) * n_cigar
    seq = b"\x12" * ((l_seq + 1) // 2)
    qual = bytes([30]) * l_seq
    body = fixed + qname + cigar + seq + qual + aux
    size = len(body) if block_size is None else block_size
    return struct.pack("<I", size) + body


def header_bytes(
    refs: list[tuple[str, int]] | None = None,
    text: bytes = b"",
    magic: bytes = b"BAM\x01",
) -> bytes:
    """Encode the BAM magic, header text and reference dictionary."""
    if refs is None:
        refs = [("chr1", 248956422)]
    out = magic + struct.pack("<i", len(text)) + text + struct.pack("<I", len(refs))
    for name, length in refs:
        encoded = name.encode() + b"\x00"
        out += struct.pack("<I", len(encoded)) + encoded + struct.pack("<I", length)
    return out


@pytest.fixture
def make_record():
    return record_bytes


@pytest.fixture
def make_header():
    return header_bytes


@pytest.fixture
def write_bam(tmp_path: Path):
    """Return a function writing raw BAM bytes as one or more gzip members."""
    counter = {"n": 0}

    def _write(payload: bytes, member_size: int | None = None, name: str | None = None) -> Path:
        counter["n"] += 1
        path = tmp_path / (name or f"test{counter['n']}.bam")
        if member_size is None:
            chunks = [payload]
        else:
            chunks = [payload[i:i + member_size] for i in range(0, len(payload), member_size)]
        path.write_bytes(b"".join(gzip.compress(c) for c in chunks))
        return path

    return _write
