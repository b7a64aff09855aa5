"""Builder for L2CAP/ATT response PDUs bounded by the connection MTU."""

from __future__ import annotations

from .att import UUID

__all__ = ["L2capWriter"]


class L2capWriter:
    """Accumulates a response of at most ``mtu`` bytes.

    Bytes written while a chunk is open are held back until the chunk is
    committed, which succeeds only if the whole chunk fits.
    """

    def __init__(self, mtu: int) -> None:
        self.mtu = int(mtu)
        self._buf = bytearray()
        self._chunk = bytearray()
        self._chunked = False

    def chunk(self) -> None:
        """Start a new chunk."""
        if self._chunked:
            raise RuntimeError("l2cap writer: chunk called twice without committing")
        self._chunked = True

    def commit(self) -> bool:
        """Append the current chunk if it fits whole; report whether it did."""
        if not self._chunked:
            raise RuntimeError("l2cap writer: commit without starting a chunk")
        success = len(self._buf) + len(self._chunk) <= self.mtu
        if success:
            self._buf += self._chunk
        self._chunk.clear()
        self._chunked = False
        return success

    def commit_fit(self) -> None:
        """Append as much of the current chunk as fits."""
        if not self._chunked:
            raise RuntimeError("l2cap writer: commit_fit without starting a chunk")
        writeable = min(self.mtu - len(self._buf), len(self._chunk))
        self._buf += self._chunk[:max(writeable, 0)]
        self._chunk.clear()
        self._chunked = False

    def write_byte_fit(self, value: int) -> bool:
        """Write a single byte; see :meth:`write_fit`."""
        return self.write_fit(bytes([value & 0xFF]))

    def write_uint16_fit(self, value: int) -> bool:
        """Write a little-endian 16-bit value; see :meth:`write_fit`."""
        return self.write_fit((value & 0xFFFF).to_bytes(2, "little"))

    def write_uuid_fit(self, uuid: UUID) -> bool:
        """Write a UUID in its over-the-air byte order; see :meth:`write_fit`."""
        return self.write_fit(uuid.raw)

    def writeable(self, pad: int, data: bytes) -> int:
        """Number of bytes of ``data`` that would fit after ``pad`` bytes."""
        if self._chunked:
            return len(data)
        avail = self.mtu - len(self._buf) - pad
        return max(0, min(avail, len(data)))

    def write_fit(self, data: bytes) -> bool:
        """Write as much of ``data`` as fits; report whether nothing was cut."""
        if self._chunked:
            self._chunk += data
            return True
        avail = self.mtu - len(self._buf)
        if avail >= len(data):
            self._buf += data
            return True
        self._buf += data[:max(avail, 0)]
        return False

    def chunk_seek(self, offset: int) -> bool:
        """Drop the first ``offset`` bytes of the open chunk.

        Returns False (and empties the chunk) if it held fewer bytes.
        """
        if not self._chunked:
            raise RuntimeError("l2cap writer: chunk_seek without chunked write in progress")
        if len(self._chunk) < offset:
            self._chunk.clear()
            return False
        del self._chunk[:offset]
        return True

    def getvalue(self) -> bytes:
        """Return the bytes written so far."""
        if self._chunked:
            raise RuntimeError("l2cap writer: bytes requested while chunked write in progress")
        return bytes(self._buf)