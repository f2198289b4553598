import struct

U32_MAX = 0xffffffff

_U32 = struct.Struct("!I")


def pack_u32(number: int) -> bytes:
    if not 0 <= number <= U32_MAX:
        raise OverflowError(f"{number} does not fit in an unsigned 32-bit integer")
    return _U32.pack(number)


def unpack_u32(data: bytes) -> int:
    number, = _U32.unpack(data)
    return number
