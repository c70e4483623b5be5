"""
Log writers.

Every writer implements the Writer protocol (accept/close):

- ConsoleWriter: synchronous stdout/stderr output
- RotatingFileWriter: queued text file with line/size/daily rotation
- RotatingStructuredFileWriter: queued XML or JSON-lines file with rotation
- SocketWriter: JSON records over UDP or TCP
"""

from .console import ConsoleWriter
from .file import LineEncoder, RotatingFileWriter
from .interface import Writer
from .rotation import RecordEncoder, RotatingSink, RotationPolicy
from .socket import SocketWriter, parse_endpoint
from .structured import (
    JSONRecordEncoder,
    RotatingStructuredFileWriter,
    XMLRecordEncoder,
)

__all__ = [
    "Writer",
    "ConsoleWriter",
    "RotatingFileWriter",
    "RotatingStructuredFileWriter",
    "SocketWriter",
    "RotationPolicy",
    "RotatingSink",
    "RecordEncoder",
    "LineEncoder",
    "XMLRecordEncoder",
    "JSONRecordEncoder",
    "parse_endpoint",
]
