# src/httpids/rules/parser.py
"""
Snort-ish rule loader for decoded HTTP traffic.

Supported rule structure (one rule per physical line):
    alert http any any -> any 80 (content:"/admin"; msg:"admin path probe"; sid:1001; nocase;)

We parse:
- action (alert/block/log, anything else is treated as alert)
- proto (any/tcp/udp/http) and the 4-tuple parts (lower-cased raw strings)
- option list inside parentheses: content, msg, sid, nocase
  (unknown keywords such as depth/offset are ignored)

Comments start with '#' or '//' and run to the end of the line. They are
stripped before anything else, so a '#' inside a content string truncates
the rule.

Rules without a sid get 1000000 + <number of rules loaded so far>.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from httpids.log import get_logger
from httpids.normalizer import ascii_lower

log = get_logger("rules")

DEFAULT_RULES_PATH = "rules.rules"
AUTO_SID_BASE = 1000000
ANY = "any"

_WHITESPACE = " \t\r\n"
# optional sign followed by digits, like atoi()
_SID_RE = re.compile(r'^[+-]?\d+')


class Action(str, Enum):
    ALERT = "alert"
    BLOCK = "block"
    LOG = "log"

    @classmethod
    def parse(cls, text: str) -> "Action":
        try:
            return cls(ascii_lower(text))
        except ValueError:
            return cls.ALERT

    @property
    def label(self) -> str:
        return self.value.upper()


class Protocol(str, Enum):
    ANY = "any"
    TCP = "tcp"
    UDP = "udp"
    HTTP = "http"

    @classmethod
    def parse(cls, text: str) -> Optional["Protocol"]:
        try:
            return cls(ascii_lower(text))
        except ValueError:
            return None


class RuleParseError(ValueError):
    def __init__(self, line_no: int, reason: str):
        super().__init__(f"line {line_no}: {reason}")
        self.line_no = line_no
        self.reason = reason


@dataclass(frozen=True)
class Rule:
    action: Action = Action.ALERT
    protocol: Protocol = Protocol.ANY
    src_ip: str = ANY
    src_port: str = ANY
    dst_ip: str = ANY
    dst_port: str = ANY
    content: str = ""
    nocase: bool = False
    msg: str = ""
    sid: int = 0
    line_no: int = 0


def _strip_comment(line: str) -> str:
    s = line.strip(_WHITESPACE)
    hash_idx = s.find('#')
    if hash_idx != -1:
        s = s[:hash_idx].strip(_WHITESPACE)
    dslash = s.find('//')
    if dslash != -1:
        s = s[:dslash].strip(_WHITESPACE)
    return s


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1]
    return value


def _parse_sid(value: str) -> int:
    m = _SID_RE.match(value)
    return int(m.group(0)) if m else 0


def parse_options(options_text: str) -> dict:
    """
    Parse the text between the parentheses into a dict with the keys
    content, msg, sid and nocase. Later occurrences of a key win.
    """
    opts = {"content": "", "msg": "", "sid": 0, "nocase": False}
    for token in options_text.split(';'):
        token = token.strip(_WHITESPACE)
        if not token:
            continue
        key, sep, value = token.partition(':')
        key = ascii_lower(key.strip(_WHITESPACE))
        value = _unquote(value.strip(_WHITESPACE)) if sep else ""

        if key == "content":
            opts["content"] = value
        elif key == "msg":
            opts["msg"] = value
        elif key == "sid":
            opts["sid"] = _parse_sid(value)
        elif key == "nocase":
            opts["nocase"] = True
        # depth, offset, pcre, ... are not supported and ignored
    return opts


def parse_rule_line(line: str, line_no: int = 0, sid_base: int = AUTO_SID_BASE) -> Optional[Rule]:
    """
    Parse a single rule line.

    Returns None for blank and comment-only lines.
    Raises RuleParseError when the line is not a valid rule.
    sid_base is the sid handed out when the rule does not carry one.
    """
    s = _strip_comment(line)
    if not s:
        return None

    lp = s.find('(')
    rp = s.rfind(')')
    if lp == -1 or rp == -1 or rp <= lp:
        raise RuleParseError(line_no, "missing options block")

    # head: action proto src_ip src_port -> dst_ip dst_port
    head = s[:lp].split()
    if len(head) < 7 or head[4] != "->":
        raise RuleParseError(line_no, "malformed head")
    action, proto, src_ip, src_port, _, dst_ip, dst_port = [ascii_lower(t) for t in head[:7]]

    protocol = Protocol.parse(proto)
    if protocol is None:
        raise RuleParseError(line_no, f"unknown protocol {proto!r}")

    opts = parse_options(s[lp + 1:rp])

    return Rule(
        action=Action.parse(action),
        protocol=protocol,
        src_ip=src_ip,
        src_port=src_port,
        dst_ip=dst_ip,
        dst_port=dst_port,
        content=opts["content"],
        nocase=opts["nocase"],
        msg=opts["msg"],
        sid=opts["sid"] or sid_base,
        line_no=line_no,
    )


def parse_rules(lines: Iterable[str]) -> List[Rule]:
    """Parse rule lines, skipping (and reporting) the malformed ones."""
    rules: List[Rule] = []
    seen = {}
    for line_no, line in enumerate(lines, start=1):
        try:
            rule = parse_rule_line(line, line_no, sid_base=AUTO_SID_BASE + len(rules))
        except RuleParseError as e:
            log.warning("rule_skipped", line=e.line_no, reason=e.reason)
            continue
        if rule is None:
            continue

        # sids are advisory: duplicates are kept but reported
        if rule.sid in seen:
            log.warning("duplicate_sid", sid=rule.sid, line=line_no, first_line=seen[rule.sid])
        else:
            seen[rule.sid] = line_no

        rules.append(rule)
        log.info("rule_loaded", line=line_no, sid=rule.sid, msg=rule.msg)
    return rules


def load_rules(path: str = DEFAULT_RULES_PATH) -> List[Rule]:
    """Load a rules file. An unreadable file yields an empty rule list."""
    try:
        # undecodable bytes become U+FFFD so one bad byte only affects its own line
        with open(path, "r", encoding="utf-8", errors="replace") as fh:
            log.info("rules_loading", path=path)
            rules = parse_rules(fh)
    except OSError as e:
        log.warning("rules_file_unavailable", path=path, error=str(e))
        return []

    log.info("rules_loaded", path=path, total=len(rules))
    return rules
