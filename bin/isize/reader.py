"""Sequential BAM decoder that keeps only the fields needed for insert sizes.

The BAM container is a series of gzip members (BGZF blocks). ``gzip`` reads
concatenated members as one stream, so the decoder only ever sees the
uncompressed BAM byte layout:

    magic "BAM\\1" | l_text i32 | text | n_ref u32 | n_ref x (l_name u32, name, l_ref u32)
    records: block_size u32 | 32-byte fixed prefix | name | cigar | seq | qual | aux
"""
from __future__ import annotations

import gzip
import struct
import zlib
from pathlib import Path
from typing import BinaryIO, Iterator

from isize.models import AlignmentRecord

BAM_MAGIC = b"BAM\x01"

# refID, pos, l_read_name, mapq, bin, n_cigar_op, flag, l_seq, next_refID, next_pos, tlen
_FIXED = struct.Struct("<iiBBHHHIiii")
_I32 = struct.Struct("<i")
_U32 = struct.Struct("<I")

SKIP_CHUNK = 64 * 1024


class DecodeError(Exception):
    """Raised when the BAM byte stream cannot be decoded."""


class BadMagicError(DecodeError):
    """Raised when the stream does not start with the BAM magic."""


class TruncatedError(DecodeError):
    """Raised when the stream ends before a complete value was read."""


class RecordSizeError(DecodeError):
    """Raised when a record's block_size disagrees with its own fields."""


class BamReader:
    """Read BAM records one at a time from an uncompressed BAM byte stream.

    Parameters
    ----------
    handle : BinaryIO
        Readable stream positioned at the BAM magic. Use :meth:`from_path`
        to open a compressed BAM file.
    """

    def __init__(self, handle: BinaryIO, name: str = "<stream>") -> None:
        self._fh = handle
        self.name = name
        self.n_ref = 0
        self.records_read = 0
        self._read_header()

    @classmethod
    def from_path(cls, path: Path | str) -> BamReader:
        """Open a BGZF/gzip-compressed BAM file and parse past its header."""
        fh = gzip.open(path, "rb")
        try:
            return cls(fh, name=str(path))
        except BaseException:
            fh.close()
            raise

    # ------------------------------------------------------------------
    # Low-level reads
    # ------------------------------------------------------------------

    def _read(self, size: int) -> bytes:
        try:
            return self._fh.read(size)
        except EOFError as exc:
            raise TruncatedError(f"{self.name}: compressed stream ended early ({exc})") from exc
        except (gzip.BadGzipFile, zlib.error) as exc:
            raise DecodeError(f"{self.name}: not a valid BGZF/gzip stream ({exc})") from exc

    def _read_exact(self, size: int, what: str) -> bytes:
        data = self._read(size)
        if len(data) != size:
            raise TruncatedError(
                f"{self.name}: expected {size} bytes for {what}, got {len(data)}"
            )
        return data

    def _skip(self, size: int, what: str) -> None:
        """Advance the cursor by exactly ``size`` bytes."""
        remaining = size
        while remaining > 0:
            chunk = self._read(min(remaining, SKIP_CHUNK))
            if not chunk:
                raise TruncatedError(
                    f"{self.name}: stream ended with {remaining} of {size} bytes of {what} left to skip"
                )
            remaining -= len(chunk)

    # ------------------------------------------------------------------
    # Header
    # ------------------------------------------------------------------

    def _read_header(self) -> None:
        magic = self._read_exact(len(BAM_MAGIC), "BAM magic")
        if magic != BAM_MAGIC:
            raise BadMagicError(f"{self.name}: wrong BAM magic {magic!r}")

        (l_text,) = _I32.unpack(self._read_exact(_I32.size, "header text length"))
        if l_text < 0:
            raise DecodeError(f"{self.name}: negative header text length {l_text}")
        self._skip(l_text, "header text")

        (self.n_ref,) = _U32.unpack(self._read_exact(_U32.size, "reference count"))
        for i in range(self.n_ref):
            (l_name,) = _U32.unpack(self._read_exact(_U32.size, f"reference {i} name length"))
            # name bytes plus the trailing l_ref u32
            self._skip(l_name + _U32.size, f"reference {i} entry")

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def read_into(self, record: AlignmentRecord) -> bool:
        """Decode the next record into ``record``.

        Returns False on a clean end of stream at a record boundary.
        """
        head = self._read(_U32.size)
        if not head:
            return False
        if len(head) != _U32.size:
            raise TruncatedError(
                f"{self.name}: stream ended inside the block_size of record {self.records_read + 1}"
            )
        (block_size,) = _U32.unpack(head)
        if block_size < _FIXED.size:
            raise RecordSizeError(
                f"{self.name}: record {self.records_read + 1} block_size {block_size} "
                f"is smaller than the {_FIXED.size}-byte fixed prefix"
            )

        (
            ref_id, _pos, l_name, _mapq, _bin, n_cigar,
            flag, l_seq, mate_ref_id, _mate_pos, tlen,
        ) = _FIXED.unpack(self._read_exact(_FIXED.size, "record fixed fields"))

        variable = l_name + 4 * n_cigar + (l_seq + 1) // 2 + l_seq
        if _FIXED.size + variable > block_size:
            raise RecordSizeError(
                f"{self.name}: record {self.records_read + 1} fields need "
                f"{_FIXED.size + variable} bytes but block_size is {block_size}"
            )
        # name, cigar, seq, qual and the auxiliary tag block
        self._skip(block_size - _FIXED.size, "record body")

        record.reference_id = ref_id
        record.mate_reference_id = mate_ref_id
        record.template_length = tlen
        record.flag = flag
        self.records_read += 1
        return True

    def __iter__(self) -> Iterator[AlignmentRecord]:
        """Yield the same reused record after each successful decode."""
        record = AlignmentRecord()
        while self.read_into(record):
            yield record

    def close(self) -> None:
        self._fh.close()

    def __enter__(self) -> BamReader:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
