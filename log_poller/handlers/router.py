"""
Downstream pipeline boundary
"""

import json
import sys
from typing import Any, Dict, Protocol, TextIO


class Router(Protocol):
    def emit(self, tag: str, time: int, record: Dict[str, Any]) -> None:
        ...


class JsonLinesRouter:
    """Writes each emitted record as one JSON object per line"""

    def __init__(self, stream: TextIO = None):
        self.stream = stream if stream is not None else sys.stdout

    def emit(self, tag: str, time: int, record: Dict[str, Any]) -> None:
        self.stream.write(json.dumps({'tag': tag, 'time': time, 'record': record}, default=str) + '\n')
        self.stream.flush()
