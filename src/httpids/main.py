# src/httpids/main.py

"""
Offline detection runner:
    python -m httpids.main --messages <file> [--rules <file>]

Steps:
1. Load rules.
2. Read decoded HTTP messages (JSON lines, one exchange per line).
3. Run the signature detector on each message.
4. Print events.

Message line format:
    {"src_ip": "10.0.0.1", "src_port": 51000, "dst_ip": "10.0.0.2", "dst_port": 80,
     "message": {"method": "GET", "path": "/admin", "headers": [["Host", "x"]], "body": ""}}
"""

import argparse
import json
from typing import Generator, List, Optional, Tuple

from httpids.config import get_settings
from httpids.http_message import HttpMessage
from httpids.log import get_logger, setup_logging
from httpids.matcher.detector import DetectionEvent, SignatureDetector
from httpids.output import ConsoleSink, JsonSink
from httpids.rules.parser import load_rules

log = get_logger("main")

FlowTuple = Tuple[str, int, str, int]


def parse_exchange(data: dict) -> Tuple[HttpMessage, FlowTuple]:
    """Split one JSON record into the message and its (src_ip, src_port, dst_ip, dst_port)."""
    if not isinstance(data, dict):
        raise ValueError("record must be a JSON object")
    try:
        flow = (str(data["src_ip"]), int(data["src_port"]),
                str(data["dst_ip"]), int(data["dst_port"]))
        message = HttpMessage.from_dict(data["message"])
    except KeyError as e:
        raise ValueError(f"missing field {e.args[0]!r}") from e
    except TypeError as e:
        raise ValueError(str(e)) from e
    return message, flow


def read_exchanges(path: str) -> Generator[Tuple[HttpMessage, FlowTuple], None, None]:
    """Yield decoded exchanges from a JSON-lines file, skipping bad lines."""
    with open(path, "rb") as fh:
        for line_no, raw_line in enumerate(fh, start=1):
            try:
                line = raw_line.decode("utf-8").strip()
                if not line:
                    continue
                exchange = parse_exchange(json.loads(line))
            except ValueError as e:
                # UnicodeDecodeError and json.JSONDecodeError are ValueErrors too
                log.warning("message_skipped", line=line_no, reason=str(e))
                continue
            yield exchange


def run_ids(messages_path: str, rules_path: Optional[str] = None,
            verbose: bool = False) -> List[DetectionEvent]:
    # 1. Load rules
    rules = load_rules(rules_path or get_settings().rules_path)
    detector = SignatureDetector(rules)
    sink = JsonSink() if verbose else ConsoleSink()

    events = []

    # 2./3. Evaluate every exchange
    for message, (src_ip, src_port, dst_ip, dst_port) in read_exchanges(messages_path):
        found = detector.match(message, src_ip, src_port, dst_ip, dst_port)
        # 4. Print events
        sink.emit_all(found)
        events.extend(found)

    log.info("scan_finished", rules=len(rules), events=len(events))
    return events


def main(argv=None):
    settings = get_settings()
    parser = argparse.ArgumentParser(description="HTTP signature detection runner")
    parser.add_argument("--messages", required=True, help="Path to JSON-lines file of decoded HTTP messages")
    parser.add_argument("--rules", default=settings.rules_path, help="Path to rules file")
    parser.add_argument("--verbose", action="store_true", help="JSON output, one event per line")
    parser.add_argument("--log-level", default=settings.log_level, help="Diagnostic log level")
    args = parser.parse_args(argv)

    setup_logging(args.log_level, settings.log_format)
    run_ids(args.messages, args.rules, verbose=args.verbose)


if __name__ == "__main__":
    main()
