import hashlib
import io
import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable

from ocifetch.errors import DigestMismatch

logger = logging.getLogger(__name__)

HEX_RE = re.compile(r"[0-9a-f]+")


@dataclass(frozen=True, slots=True)
class Digest:
    """Content identifier of the form '<algorithm>:<hex>'

    ref: https://github.com/opencontainers/image-spec/blob/main/descriptor.md#digests
    """

    algorithm: str
    hex: str

    def __str__(self):
        return f"{self.algorithm}:{self.hex}"

    @classmethod
    def parse(cls, value: str) -> "Digest":
        algorithm, sep, hex_ = value.partition(":")
        if not sep or not algorithm:
            raise ValueError(f"Invalid digest: {value!r}")
        if algorithm not in hashlib.algorithms_available:
            raise ValueError(f"Unsupported digest algorithm: {algorithm!r}")
        if not HEX_RE.fullmatch(hex_):
            raise ValueError(f"Invalid digest hex: {value!r}")
        return cls(algorithm, hex_)

    def hasher(self):
        return hashlib.new(self.algorithm)


def sha256(data: bytes) -> Digest:
    return Digest("sha256", hashlib.sha256(data).hexdigest())


class VerifyingReader(io.RawIOBase):
    """Pass bytes through while hashing them, verify the hash on close.

    The comparison only happens once the source has been read to the end.
    Callers must close the reader, a reader that is never closed is never
    verified. Neither is a reader whose source raised, the error it raised
    is the one the caller sees, nor a reader closed by the garbage
    collector, which has no way to report a mismatch.
    """

    def __init__(
        self,
        chunks: Iterable[bytes],
        digest: Digest,
        close: Callable[[], None] | None = None,
    ):
        super().__init__()
        self.digest = digest
        self._close = close
        self._buffer = b""
        self._offset = 0
        self._eof = False
        self._failed = False
        self._finalizing = False
        self._chunks = iter(chunks)
        self._hasher = digest.hasher()

    def readable(self) -> bool:
        return True

    def _fill(self) -> bool:
        """Load the next non-empty chunk, return False at the end of the source"""
        while self._offset >= len(self._buffer):
            try:
                chunk = next(self._chunks)
            except StopIteration:
                self._eof = True
                return False
            except Exception:
                self._failed = True
                raise
            self._hasher.update(chunk)
            self._buffer, self._offset = chunk, 0
        return True

    def readinto(self, b) -> int:
        if self._eof or self._failed or not self._fill():
            return 0
        n = min(len(b), len(self._buffer) - self._offset)
        b[:n] = self._buffer[self._offset : self._offset + n]
        self._offset += n
        return n

    def verify(self):
        actual = self._hasher.hexdigest()
        if actual != self.digest.hex:
            raise DigestMismatch(
                str(self.digest), f"{self.digest.algorithm}:{actual}", what="blob"
            )

    def close(self):
        if self.closed:
            return
        try:
            if self._failed:
                logger.debug("Reading %s failed, not verified", self.digest)
            elif not self._finalizing:
                # Everything handed out so far, check if that was all of it.
                if not self._eof and self._offset >= len(self._buffer):
                    self._fill()
                if self._eof:
                    self.verify()
                else:
                    logger.debug("Closing %s before the end, not verified", self.digest)
        finally:
            try:
                if self._close is not None:
                    self._close()
            finally:
                super().close()

    def __del__(self):
        self._finalizing = True
        self.close()
