import struct

from dataclasses import dataclass
from typing import Self

from PngErrors import InvalidChunkLength, InvalidChunkType, InvalidTextMetadata
from utils.crc import Crc
from utils.integer import U32_MAX
from utils.string import byte_length, contains_null, normalize_newlines


class Iso:

    # See http://www.libpng.org/pub/png/spec/iso/index-object.html#5PNG-file-signature
    SIGNATURE = b'\x89PNG\r\n\x1a\n'
    SUB_CHUNK_SIZE = 4
    CHUNK_NAME_ENCODING = 'utf-8'

    # Keywords and text are written as their UTF-8 bytes
    TEXT_ENCODING = 'utf-8'
    TEXT_SEPARATOR = b'\0'
    MAX_KEYWORD_LENGTH = 79

    # ISO Defined Chunks
    IMAGE_HEADER = 'IHDR'
    IMAGE_DATA = 'IDAT'
    IMAGE_TRAILER = 'IEND'
    TEXTUAL_DATA = 'tEXt'

    # See http://www.libpng.org/pub/png/spec/iso/index-object.html#5Chunk-naming-conventions
    PROPERTY_BIT = 0x20
    _ANCILLARY_BYTE = 0
    _PRIVATE_BYTE = 1
    _SAFE_TO_COPY_BYTE = 3

    @classmethod
    def is_valid_chunk_name(cls, name: str) -> bool:
        """
        Test if the name is made of exactly four ASCII letters
        """
        return len(name) == cls.SUB_CHUNK_SIZE and name.isascii() and name.isalpha()

    @classmethod
    def chunk_name_bytes(cls, name: str | bytes) -> bytes:
        """
        Encode a chunk name, raising InvalidChunkType unless it is exactly
        four bytes long
        """
        if isinstance(name, str):
            try:
                name = name.encode(cls.CHUNK_NAME_ENCODING)
            except UnicodeEncodeError as e:
                raise InvalidChunkType(f"chunk type {name!r} cannot be encoded") from e
        if len(name) != cls.SUB_CHUNK_SIZE:
            raise InvalidChunkType(
                f"chunk type {name!r} is {len(name)} bytes long, expected {cls.SUB_CHUNK_SIZE}"
            )
        return name

    @classmethod
    def check_chunk_length(cls, length: int) -> int:
        if length > U32_MAX:
            raise InvalidChunkLength(f"payload of {length} bytes does not fit in a chunk")
        return length

    @classmethod
    def _property_bit(cls, name: str | bytes, index: int) -> bool:
        name = cls.chunk_name_bytes(name)
        return bool(name[index] & cls.PROPERTY_BIT)

    @classmethod
    def chunk_is_critical(cls, name: str | bytes) -> bool:
        """
        Test if the chunk is critical: the 5th bit of the first byte of
        the name is not set (i.e. the first character is uppercase)
        """
        return not cls._property_bit(name, cls._ANCILLARY_BYTE)

    @classmethod
    def chunk_is_public(cls, name: str | bytes) -> bool:
        return not cls._property_bit(name, cls._PRIVATE_BYTE)

    @classmethod
    def chunk_is_safe_to_copy(cls, name: str | bytes) -> bool:
        return cls._property_bit(name, cls._SAFE_TO_COPY_BYTE)


def checksum(kind: bytes, data: bytes) -> int:
    crc = Crc()
    crc.update(kind)
    if data:
        crc.update(data)
    return crc.value()


@dataclass(frozen=True)
class Chunk:
    """
    One length-prefixed, type-tagged, checksummed PNG record

    ``crc`` is whatever the record carried when it was built. The encoder
    always recomputes it from ``kind`` and ``data``.
    """
    kind: str
    data: bytes = b''
    crc: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.data, bytes):
            object.__setattr__(self, 'data', bytes(self.data))

    @classmethod
    def create(cls, kind: str, data: bytes = b'') -> Self:
        data = bytes(data)
        return cls(kind, data, checksum(kind.encode(Iso.CHUNK_NAME_ENCODING), data))

    @property
    def length(self) -> int:
        return len(self.data)

    @property
    def kind_bytes(self) -> bytes:
        return self.kind.encode(Iso.CHUNK_NAME_ENCODING)

    def compute_crc(self) -> int:
        return checksum(self.kind_bytes, self.data)

    @property
    def is_critical(self) -> bool:
        return Iso.chunk_is_critical(self.kind)

    @property
    def is_public(self) -> bool:
        return Iso.chunk_is_public(self.kind)

    @property
    def is_safe_to_copy(self) -> bool:
        return Iso.chunk_is_safe_to_copy(self.kind)

    def __bytes__(self) -> bytes:
        length = Iso.check_chunk_length(self.length)
        name = Iso.chunk_name_bytes(self.kind)
        return struct.pack(f"!I4s{length}sI", length, name, self.data, self.crc)

    def __repr__(self) -> str:
        return f"Chunk({self.kind!r}, length={self.length}, crc={self.crc:#010x})"


def build_text_chunk(keyword: str, text: str) -> Chunk:
    """
    Build a tEXt chunk holding a keyword/text pair, e.g. the provenance of a
    generated thumbnail. The returned chunk carries its CRC already.
    """
    keyword_length = byte_length(keyword, Iso.TEXT_ENCODING)
    if keyword_length == 0:
        raise InvalidTextMetadata("keyword is empty")
    if keyword_length > Iso.MAX_KEYWORD_LENGTH:
        raise InvalidTextMetadata(
            f"keyword is {keyword_length} bytes long, the limit is {Iso.MAX_KEYWORD_LENGTH}"
        )
    if contains_null(keyword):
        raise InvalidTextMetadata("keyword contains a null byte")

    if contains_null(text):
        raise InvalidTextMetadata("text contains a null byte")

    text = normalize_newlines(text)
    if not text:
        raise InvalidTextMetadata("text is empty")

    data = b''.join((
        keyword.encode(Iso.TEXT_ENCODING),
        Iso.TEXT_SEPARATOR,
        text.encode(Iso.TEXT_ENCODING),
    ))
    return Chunk.create(Iso.TEXTUAL_DATA, data)
