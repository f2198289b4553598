from io import BytesIO
from typing import BinaryIO, Iterable

from PngChunk import Chunk, Iso
from PngErrors import (
    ChecksumMismatch,
    InvalidChunkType,
    MalformedSignature,
    PngError,
    ShortRead,
    WriteFailure,
)
from utils.crc import Crc
from utils.integer import pack_u32, unpack_u32

VERBOSE = False

# Largest single read issued to the underlying stream
READ_BLOCK_SIZE = 1 << 16


class StrictReader:
    """
    Read exactly the requested number of bytes from a binary stream or fail
    """

    def __init__(self, stream: BinaryIO) -> None:
        self.stream = stream
        self.position = 0

    def read(self, size: int) -> bytes:
        data = bytearray()
        while len(data) < size:
            block = self.stream.read(min(size - len(data), READ_BLOCK_SIZE))
            if not block:
                break
            data.extend(block)

        start = self.position
        self.position += len(data)
        if (len_read := len(data)) != size:
            raise ShortRead(size, len_read, start)
        return bytes(data)


class StrictWriter:
    """
    Write every byte handed to it to a binary stream or fail
    """

    def __init__(self, stream: BinaryIO) -> None:
        self.stream = stream
        self.position = 0

    def write(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            try:
                written = self.stream.write(view)
            except OSError as e:
                raise WriteFailure(f"write failed: {e}", self.position) from e

            # None is how a non-blocking raw stream reports that nothing was written
            if not written:
                raise WriteFailure(f"sink accepted no bytes out of {len(view)}", self.position)
            view = view[written:]
            self.position += written


class PngDecoder:
    def __init__(self, stream: BinaryIO, strict: bool = False) -> None:
        self.file = StrictReader(stream)
        self.strict = strict
        self.chunks_read: list[Chunk] = []

    def decode(self) -> list[Chunk]:
        self._decode_signature()

        # Read chunks until the image trailer, there is no other end-of-stream marker
        while True:
            chunk = self._decode_chunk()
            self.chunks_read.append(chunk)
            if VERBOSE:
                print(f"decoded chunk {chunk.kind} ({chunk.length} bytes)")
            if chunk.kind == Iso.IMAGE_TRAILER:
                return self.chunks_read

    def _decode_signature(self) -> None:
        try:
            signature = self.file.read(len(Iso.SIGNATURE))
        except ShortRead as e:
            raise MalformedSignature("stream is too short to hold a signature", 0, e.received) from e

        if signature != Iso.SIGNATURE:
            raise MalformedSignature("invalid signature", 0, len(Iso.SIGNATURE))

    def _decode_chunk(self) -> Chunk:
        chunk_start = self.file.position
        length = unpack_u32(self.file.read(Iso.SUB_CHUNK_SIZE))

        name_start = self.file.position
        name = self.file.read(Iso.SUB_CHUNK_SIZE)
        crc = Crc()
        crc.update(name)

        # Read chunk data
        data = b''
        if length > 0:
            data = self.file.read(length)
            crc.update(data)

        # Integrity is checked before the name is interpreted
        crc_code = unpack_u32(self.file.read(Iso.SUB_CHUNK_SIZE))
        if crc_code != crc.value():
            kind = name.decode(Iso.CHUNK_NAME_ENCODING, errors='backslashreplace')
            raise ChecksumMismatch(kind, crc_code, crc.value(), chunk_start, self.file.position)

        name_end = name_start + Iso.SUB_CHUNK_SIZE
        try:
            kind = name.decode(Iso.CHUNK_NAME_ENCODING)
        except UnicodeDecodeError as e:
            raise InvalidChunkType(f"chunk type {name!r} is not valid text", name_start, name_end) from e
        if self.strict and not Iso.is_valid_chunk_name(kind):
            raise InvalidChunkType(f"chunk type {kind!r} is not four ASCII letters", name_start, name_end)

        return Chunk(kind, data, crc_code)


class PngEncoder:
    def __init__(self, stream: BinaryIO) -> None:
        self.file = StrictWriter(stream)
        self.chunks_written = 0

    def encode(self, chunks: Iterable[Chunk]) -> None:
        self.file.write(Iso.SIGNATURE)
        for chunk in chunks:
            self._encode_chunk(chunk)
            self.chunks_written += 1
            if VERBOSE:
                print(f"encoded chunk {chunk.kind} ({chunk.length} bytes)")

    def _encode_chunk(self, chunk: Chunk) -> None:
        # The length always comes from the payload itself
        length = Iso.check_chunk_length(len(chunk.data))
        self.file.write(pack_u32(length))

        name = Iso.chunk_name_bytes(chunk.kind)

        # The stored crc is never reused
        crc = Crc()
        crc.update(name)
        self.file.write(name)

        if chunk.data:
            crc.update(chunk.data)
            self.file.write(chunk.data)

        self.file.write(pack_u32(crc.value()))


def decode(stream: BinaryIO, strict: bool = False) -> list[Chunk]:
    """
    Read a PNG signature and every chunk up to and including IEND.

    Nothing past the IEND record is read. With ``strict`` set, chunk types
    must also be four ASCII letters.
    """
    return PngDecoder(stream, strict).decode()


def encode(stream: BinaryIO, chunks: Iterable[Chunk]) -> None:
    """
    Write the PNG signature followed by every chunk, recomputing lengths and
    CRCs. On failure the stream is left as it is; callers should write to a
    temporary destination and only keep it once this returns.
    """
    PngEncoder(stream).encode(chunks)


def decode_bytes(data: bytes, strict: bool = False) -> list[Chunk]:
    return decode(BytesIO(data), strict)


def encode_bytes(chunks: Iterable[Chunk]) -> bytes:
    buffer = BytesIO()
    encode(buffer, chunks)
    return buffer.getvalue()


def main(argv: list[str]) -> int:
    if len(argv) != 2:
        print(f"usage: python {argv[0]} <filename>")
        return 1

    _, filename = argv
    with open(filename, 'rb') as file:
        try:
            chunks = decode(file)
        except PngError as e:
            print(f"{filename}: {type(e).__name__}: {e}")
            return 1

    for chunk in chunks:
        print(f"{chunk.kind} {chunk.length:>10} {chunk.crc:#010x}")
    return 0


if __name__ == "__main__":
    from sys import argv, exit
    exit(main(argv))
