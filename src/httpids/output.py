"""
Event sinks: where detection events end up once the detector has produced them.

ConsoleSink prints the classic one-line form
    [ALERT] sid=1001 msg="admin path probe" 10.0.0.1:51000 -> 10.0.0.2:80
JsonSink prints one JSON object per event.
"""

import json
import sys
from typing import Iterable, TextIO

from httpids.matcher.detector import DetectionEvent


def format_event(event: DetectionEvent) -> str:
    return (f'[{event.label}] sid={event.sid} msg="{event.msg}" '
            f'{event.src_ip}:{event.src_port} -> {event.dst_ip}:{event.dst_port}')


class ConsoleSink:
    def __init__(self, stream: TextIO = None):
        self.stream = stream

    def emit(self, event: DetectionEvent) -> None:
        print(format_event(event), file=self.stream or sys.stdout)

    def emit_all(self, events: Iterable[DetectionEvent]) -> None:
        for event in events:
            self.emit(event)


class JsonSink(ConsoleSink):
    def emit(self, event: DetectionEvent) -> None:
        print(json.dumps(event.to_dict()), file=self.stream or sys.stdout)
