# src/httpids/matcher/detector.py

"""
Signature detector for decoded HTTP messages:
- builds one haystack per message (start line + headers + body)
- protocol filter (any/tcp/http rules only, the traffic is HTTP over TCP)
- endpoint checks on the 4-tuple through a pluggable predicate
- literal content search, optionally case-insensitive
  (nocase folds ASCII letters only, like a byte-wise tolower)
- returns one DetectionEvent per matching rule, in rule order

Every rule is evaluated against every message (no early exit), so the cost is
rules x haystack length per message.
"""

from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from httpids.http_message import HttpMessage
from httpids.matcher.endpoint import EndpointMatcher, exact_match
from httpids.normalizer import ascii_lower, build_haystack
from httpids.rules.parser import Protocol, Rule

# rules for these protocols can fire on HTTP traffic
HTTP_PROTOCOLS = frozenset({Protocol.ANY, Protocol.TCP, Protocol.HTTP})


@dataclass(frozen=True)
class DetectionEvent:
    label: str
    sid: int
    msg: str
    src_ip: str
    src_port: int
    dst_ip: str
    dst_port: int

    def to_dict(self) -> Dict:
        return asdict(self)


class SignatureDetector:
    def __init__(self, rules: Iterable[Rule], endpoint_matcher: EndpointMatcher = exact_match):
        # snapshot; the detector never changes its rules
        self.rules: Sequence[Rule] = tuple(rules)
        self.endpoint_matcher = endpoint_matcher

    def match(self, message: HttpMessage, src_ip: str, src_port: int,
              dst_ip: str, dst_port: int) -> List[DetectionEvent]:
        """Evaluate one message against all rules and return the events."""
        events = []
        haystack = build_haystack(message)
        lowered: Optional[str] = None
        sport, dport = str(src_port), str(dst_port)

        for rule in self.rules:
            if rule.protocol not in HTTP_PROTOCOLS:
                continue

            if not self._match_endpoints(rule, src_ip, sport, dst_ip, dport):
                continue

            if rule.content:
                if rule.nocase:
                    if lowered is None:
                        lowered = ascii_lower(haystack)
                    if ascii_lower(rule.content) not in lowered:
                        continue
                elif rule.content not in haystack:
                    continue

            events.append(DetectionEvent(
                label=rule.action.label,
                sid=rule.sid,
                msg=rule.msg,
                src_ip=src_ip,
                src_port=src_port,
                dst_ip=dst_ip,
                dst_port=dst_port,
            ))

        return events

    def _match_endpoints(self, rule: Rule, src_ip: str, src_port: str,
                         dst_ip: str, dst_port: str) -> bool:
        m = self.endpoint_matcher
        return (m(rule.src_ip, src_ip) and m(rule.dst_ip, dst_ip)
                and m(rule.src_port, src_port) and m(rule.dst_port, dst_port))


def apply_rules(rules: Iterable[Rule], message: HttpMessage, src_ip: str, src_port: int,
                dst_ip: str, dst_port: int,
                endpoint_matcher: EndpointMatcher = exact_match) -> List[DetectionEvent]:
    return SignatureDetector(rules, endpoint_matcher).match(
        message, src_ip, src_port, dst_ip, dst_port)
