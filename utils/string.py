NULL = '\0'


def contains_null(string: str) -> bool:
    return NULL in string


def normalize_newlines(string: str) -> str:
    """
    Replace every CRLF pair with a single LF
    """
    return string.replace('\r\n', '\n')


def byte_length(string: str, encoding: str) -> int:
    return len(string.encode(encoding))
