"""
normalizer.py
--------------
Turns a decoded HTTP message into the single text ("haystack") that rule
content patterns are searched in.

Layout:
    <start line>\n<headers, one "Name: value\n" each>\n<body>\n<start line>

The start line appears both before and after the body, so patterns touching
the request/status line are found next to either end of the message.
"""

from typing import Union

from httpids.http_message import HttpMessage

# A-Z -> a-z only; other characters keep their case
_ASCII_LOWER = str.maketrans(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz")


def bytes_to_str_latin1(payload: bytes) -> str:
    """Safe lossless conversion from raw bytes to Python str."""
    return payload.decode("latin1")


def ascii_lower(s: str) -> str:
    """Lower-case ASCII letters only, so one character never turns into two."""
    return s.translate(_ASCII_LOWER)


def body_text(body: Union[str, bytes]) -> str:
    if isinstance(body, (bytes, bytearray)):
        return bytes_to_str_latin1(bytes(body))
    return body


def build_start_line(message: HttpMessage) -> str:
    if message.is_request:
        return f"{message.method} {message.path} {message.version}"
    return f"{message.version} {message.status_code} {message.reason_phrase}"


def build_header_block(message: HttpMessage) -> str:
    return "".join(f"{name}: {value}\n" for name, value in message.headers)


def build_haystack(message: HttpMessage) -> str:
    start_line = build_start_line(message)
    return (start_line + "\n" + build_header_block(message) + "\n"
            + body_text(message.body) + "\n" + start_line)
