"""
Position-aware XML event source built on `xml.parsers.expat`.

Turns a document into a flat list of start/end/text events, each carrying
the line and column it was found at, so that the parser can report exactly
where unexpected content sits.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union
from xml.parsers import expat

from .errors import TextPosition, UnexpectedXml, XmlError

START = 'start'
END = 'end'
TEXT = 'text'


@dataclass
class XmlEvent:
    kind: str
    position: TextPosition
    name: str = ''
    attrs: Dict[str, str] = field(default_factory=dict)
    text: str = ''


class _EventCollector:
    """expat 콜백을 받아 XmlEvent 리스트로 모읍니다."""

    def __init__(self, parser):
        self._parser = parser
        self.events: List[XmlEvent] = []
        parser.StartElementHandler = self.start
        parser.EndElementHandler = self.end
        parser.CharacterDataHandler = self.data
        parser.StartDoctypeDeclHandler = self.doctype

    def _position(self) -> TextPosition:
        return TextPosition(self._parser.CurrentLineNumber, self._parser.CurrentColumnNumber + 1)

    def start(self, name, attrs):
        self.events.append(XmlEvent(START, self._position(), name=name, attrs=dict(attrs)))

    def end(self, name):
        self.events.append(XmlEvent(END, self._position(), name=name))

    def data(self, text):
        # expat은 하나의 텍스트를 여러 번에 나누어 전달할 수 있으므로 합칩니다.
        if self.events and self.events[-1].kind == TEXT:
            self.events[-1].text += text
        else:
            self.events.append(XmlEvent(TEXT, self._position(), text=text))

    def doctype(self, name, system_id, public_id, has_internal_subset):
        raise UnexpectedXml('a document without DOCTYPE declaration', self._position())


def read_events(source: Union[bytes, bytearray, str, object]) -> List[XmlEvent]:
    """
    Tokenizes a whole document.

    `source` may be bytes, a str or a binary file-like object. Malformed XML
    and read failures are raised as `XmlError`.
    """
    encoding: Optional[str] = None
    if isinstance(source, str):
        data = source.encode('utf-8')
        encoding = 'utf-8'
    elif isinstance(source, (bytes, bytearray)):
        data = bytes(source)
    elif hasattr(source, 'read'):
        try:
            data = source.read()
        except OSError as e:
            raise XmlError.wrap(e) from e
        if isinstance(data, str):
            data = data.encode('utf-8')
            encoding = 'utf-8'
    else:
        raise TypeError(f"Cannot read XML from {type(source).__name__}")

    parser = expat.ParserCreate(encoding)
    collector = _EventCollector(parser)
    try:
        parser.Parse(data, True)
    except expat.ExpatError as e:
        raise XmlError.wrap(e) from e
    return collector.events
