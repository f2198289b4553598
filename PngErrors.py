class PngError(ValueError):
    """
    Base class for every failure raised while framing PNG chunks
    """

    def __init__(self, reason: str, start: int = None, end: int = None) -> None:
        self.reason = reason
        self.start = start
        self.end = end
        super().__init__(reason)
        self.args = (reason, start, end)

    def __str__(self) -> str:
        if self.start is None:
            return self.reason
        if self.end is None or self.end == self.start:
            return f"{self.reason} (at byte {self.start})"
        return f"{self.reason} (bytes {self.start}-{self.end})"


class MalformedSignature(PngError):
    pass


class ShortRead(PngError, EOFError):
    def __init__(self, requested: int, received: int, start: int = None) -> None:
        self.requested = requested
        self.received = received
        end = None if start is None else start + received
        super().__init__(f"tried to read {requested} bytes, received {received}", start, end)
        self.args = (requested, received, start)


class InvalidChunkType(PngError):
    pass


class InvalidChunkLength(PngError):
    pass


class ChecksumMismatch(PngError):
    def __init__(self, kind: str, expected: int, actual: int,
                 start: int = None, end: int = None) -> None:
        self.kind = kind
        self.expected = expected
        self.actual = actual
        reason = f"chunk {kind} failed CRC: stored {expected:#010x}, computed {actual:#010x}"
        super().__init__(reason, start, end)
        self.args = (kind, expected, actual, start, end)


class InvalidTextMetadata(PngError):
    pass


class WriteFailure(PngError):
    pass
