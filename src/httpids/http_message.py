"""
http_message.py
---------------
The decoded HTTP message handed to the detector by the decoding stage.

The detector only reads these objects. Headers are kept as an ordered list of
(name, value) pairs so repeated header names survive in arrival order.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple, Union


@dataclass
class HttpMessage:
    is_request: bool
    method: str = ""
    path: str = ""
    version: str = ""
    status_code: int = 0
    reason_phrase: str = ""
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: Union[str, bytes] = ""

    @classmethod
    def request(cls, method: str, path: str, version: str = "HTTP/1.1",
                headers=None, body: Union[str, bytes] = "") -> "HttpMessage":
        return cls(is_request=True, method=method, path=path, version=version,
                   headers=_header_pairs(headers), body=body)

    @classmethod
    def response(cls, status_code: int, reason_phrase: str = "", version: str = "HTTP/1.1",
                 headers=None, body: Union[str, bytes] = "") -> "HttpMessage":
        return cls(is_request=False, version=version, status_code=status_code,
                   reason_phrase=reason_phrase, headers=_header_pairs(headers), body=body)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HttpMessage":
        """
        Build a message from its JSON form, e.g.
            {"method": "GET", "path": "/", "version": "HTTP/1.1",
             "headers": [["Host", "example.com"]], "body": ""}
        A message is a request unless it carries a status_code
        (or an explicit "is_request": false).
        Raises ValueError when required fields are missing or have the wrong type.
        """
        if not isinstance(data, dict):
            raise ValueError("message must be a JSON object")

        is_request = data.get("is_request", "status_code" not in data)
        if not isinstance(is_request, bool):
            raise ValueError("is_request must be true or false")
        body = data.get("body", "")
        if not isinstance(body, (str, bytes)):
            raise ValueError("body must be a string")
        try:
            if is_request:
                return cls.request(
                    method=str(data["method"]),
                    path=str(data["path"]),
                    version=str(data.get("version", "HTTP/1.1")),
                    headers=data.get("headers"),
                    body=body,
                )
            return cls.response(
                status_code=int(data["status_code"]),
                reason_phrase=str(data.get("reason_phrase", "")),
                version=str(data.get("version", "HTTP/1.1")),
                headers=data.get("headers"),
                body=body,
            )
        except KeyError as e:
            raise ValueError(f"missing field {e.args[0]!r}") from e
        except TypeError as e:
            raise ValueError(str(e)) from e


def _header_pairs(headers) -> List[Tuple[str, str]]:
    if not headers:
        return []
    if isinstance(headers, dict):
        headers = headers.items()
    pairs = []
    for item in headers:
        name, value = item
        pairs.append((str(name), str(value)))
    return pairs
