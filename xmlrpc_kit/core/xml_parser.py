"""
XML-RPC parser.

Rebuilds Value trees from XML documents. The document is tokenized by
`xml_events.read_events` and then walked by a small recursive-descent reader
keyed on the type tag nested inside each `<value>`:

    <i4> <int> <boolean> <string> <double> <dateTime.iso8601> <base64>
    <struct> (<member> <name/> <value/> </member>)*
    <array> <data> <value/>* </data>

Any failure aborts the whole decode with a `ParseError`; no partial value is
ever returned.
"""
import base64
import binascii
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple, Union

from .errors import InvalidValue, TextPosition, UnexpectedXml
from .models import (INT_MAX, INT_MIN, Array, Base64, Bool, DateTime, Double, Fault, Int,
                     String, Struct, Value)
from .xml_events import END, START, TEXT, XmlEvent, read_events

logger = logging.getLogger(__name__)

# Struct/Array 중첩 허용 한도. 공격자가 만든 깊은 문서로부터 스택을 보호합니다.
DEFAULT_MAX_DEPTH = 64

# 선행 0을 제외하고 최대 10자리만 허용하여 int() 변환 전에 길이를 제한합니다.
_INT_RE = re.compile(r'^\s*[+-]?0*\d{1,10}\s*$', re.ASCII)
_DATETIME_RE = re.compile(
    r'^(\d{4})-?(\d{2})-?(\d{2})'
    r'T(\d{2}):?(\d{2}):?(\d{2})'
    r'(?:[.,](\d+))?'
    r'(Z|[+-]\d{2}(?::?\d{2}(?::?\d{2})?)?)?$',
    re.ASCII,
)


def _parse_int(tag: str, text: str) -> Int:
    if not _INT_RE.match(text):
        raise InvalidValue(f"<{tag}> content '{text}' is not an integer")
    try:
        number = int(text)
    except ValueError:
        # 선행 0만 수천 개인 경우 int() 자릿수 제한에 걸립니다.
        raise InvalidValue(f"<{tag}> content is too long to be an integer") from None
    if not INT_MIN <= number <= INT_MAX:
        raise InvalidValue(f"<{tag}> content '{text}' does not fit in 32 bits")
    return Int(number)


def _parse_boolean(tag: str, text: str) -> Bool:
    stripped = text.strip()
    if stripped not in ('0', '1'):
        raise InvalidValue(f"<{tag}> content '{text}' is neither 0 nor 1")
    return Bool(stripped == '1')


def _parse_string(tag: str, text: str) -> String:
    return String(text)


def _parse_double(tag: str, text: str) -> Double:
    try:
        if '_' in text:
            raise ValueError(text)
        return Double(float(text))
    except ValueError:
        raise InvalidValue(f"<{tag}> content '{text}' is not a floating point number") from None


def parse_datetime(text: str) -> datetime:
    """
    Parses the ISO 8601 forms used by XML-RPC peers.

    Accepts basic (`19980717T14:08:55`) and extended (`1998-07-17T14:08:55`)
    dates, an optional fraction and an optional `Z` / `+HH:MM` / `+HH:MM:SS`
    offset. The result is naive unless an offset was given. Raises `ValueError`.
    """
    match = _DATETIME_RE.match(text.strip())
    if not match:
        raise ValueError(f"'{text}' is not an ISO 8601 date/time")
    year, month, day, hour, minute, second, fraction, offset = match.groups()
    microsecond = int((fraction or '0')[:6].ljust(6, '0'))
    tzinfo = None
    if offset == 'Z':
        tzinfo = timezone.utc
    elif offset:
        sign = -1 if offset[0] == '-' else 1
        digits = offset[1:].replace(':', '')
        hours, minutes, seconds = int(digits[:2]), int(digits[2:4] or '0'), int(digits[4:] or '0')
        tzinfo = timezone(sign * timedelta(hours=hours, minutes=minutes, seconds=seconds))
    return datetime(int(year), int(month), int(day), int(hour), int(minute), int(second),
                    microsecond, tzinfo=tzinfo)


def _parse_datetime(tag: str, text: str) -> DateTime:
    try:
        return DateTime(parse_datetime(text))
    except ValueError as e:
        raise InvalidValue(f"<{tag}> content is invalid: {e}") from None


def _parse_base64(tag: str, text: str) -> Base64:
    try:
        return Base64(base64.b64decode(''.join(text.split()), validate=True))
    except (binascii.Error, ValueError):
        raise InvalidValue(f"<{tag}> content is not valid base64") from None


SCALAR_PARSERS: Dict[str, Callable[[str, str], Value]] = {
    'i4': _parse_int,
    'int': _parse_int,
    'boolean': _parse_boolean,
    'string': _parse_string,
    'double': _parse_double,
    'dateTime.iso8601': _parse_datetime,
    'base64': _parse_base64,
}

VALUE_TAGS = tuple(SCALAR_PARSERS) + ('struct', 'array')
EXPECTED_VALUE_TAGS = 'one of ' + ', '.join(f"<{tag}>" for tag in VALUE_TAGS)


class _EventReader:
    """이벤트 리스트를 순서대로 소비하는 재귀 하강 파서."""

    def __init__(self, events: List[XmlEvent], max_depth: int = DEFAULT_MAX_DEPTH):
        self._events = events
        self._index = 0
        self.max_depth = max_depth

    # --- low level -----------------------------------------------------

    def _end_position(self) -> TextPosition:
        if self._events:
            return self._events[-1].position
        return TextPosition(1, 1)

    def _next_significant(self, expected: str) -> XmlEvent:
        """Skips whitespace-only text and returns the next start/end event."""
        while self._index < len(self._events):
            event = self._events[self._index]
            self._index += 1
            if event.kind == TEXT:
                if event.text.strip():
                    raise UnexpectedXml(expected, event.position)
                continue
            return event
        raise UnexpectedXml(expected, self._end_position())

    def _peek_significant(self) -> Optional[XmlEvent]:
        index = self._index
        while index < len(self._events):
            event = self._events[index]
            if event.kind != TEXT or event.text.strip():
                return event
            index += 1
        return None

    @staticmethod
    def _check_attributes(event: XmlEvent) -> None:
        if event.attrs:
            raise UnexpectedXml(f"<{event.name}> without attributes", event.position)

    def expect_start(self, name: str) -> XmlEvent:
        event = self._next_significant(f"<{name}>")
        if event.kind != START or event.name != name:
            raise UnexpectedXml(f"<{name}>", event.position)
        self._check_attributes(event)
        return event

    def expect_end(self, name: str) -> XmlEvent:
        event = self._next_significant(f"</{name}>")
        if event.kind != END or event.name != name:
            raise UnexpectedXml(f"</{name}>", event.position)
        return event

    def read_text(self, name: str) -> str:
        """Collects the text content of the element just opened, up to its end tag."""
        parts: List[str] = []
        while self._index < len(self._events):
            event = self._events[self._index]
            self._index += 1
            if event.kind == TEXT:
                parts.append(event.text)
            elif event.kind == END and event.name == name:
                return ''.join(parts)
            else:
                raise UnexpectedXml(f"text content or </{name}>", event.position)
        raise UnexpectedXml(f"</{name}>", self._end_position())

    def expect_document_end(self) -> None:
        event = self._peek_significant()
        if event is not None:
            raise UnexpectedXml('end of document', event.position)

    # --- values --------------------------------------------------------

    def read_value(self, depth: int = 0) -> Value:
        self.expect_start('value')
        return self._read_value_body(depth)

    def _read_value_body(self, depth: int) -> Value:
        """`<value>` 시작 태그 직후부터 `</value>`까지 읽습니다."""
        text_parts: List[str] = []
        while self._index < len(self._events):
            event = self._events[self._index]
            self._index += 1

            if event.kind == TEXT:
                text_parts.append(event.text)
                continue

            if event.kind == END and event.name == 'value':
                # 타입 태그가 없는 값은 XML-RPC 규격에 따라 string으로 취급합니다.
                return String(''.join(text_parts))

            if event.kind != START or event.name not in VALUE_TAGS:
                raise UnexpectedXml(EXPECTED_VALUE_TAGS, event.position)
            if ''.join(text_parts).strip():
                raise UnexpectedXml("either text or a single type element inside <value>",
                                    event.position)
            self._check_attributes(event)

            if event.name == 'struct':
                value = self._read_struct(event, depth + 1)
            elif event.name == 'array':
                value = self._read_array(event, depth + 1)
            else:
                value = SCALAR_PARSERS[event.name](event.name, self.read_text(event.name))

            self.expect_end('value')
            return value

        raise UnexpectedXml('</value>', self._end_position())

    def _check_depth(self, event: XmlEvent, depth: int) -> None:
        if depth > self.max_depth:
            raise UnexpectedXml(f"at most {self.max_depth} nested structs/arrays", event.position)

    def _read_struct(self, start: XmlEvent, depth: int) -> Struct:
        self._check_depth(start, depth)
        members: Dict[str, Value] = {}
        while True:
            event = self._next_significant('<member> or </struct>')
            if event.kind == END and event.name == 'struct':
                return Struct(members)
            if event.kind != START or event.name != 'member':
                raise UnexpectedXml('<member> or </struct>', event.position)
            self._check_attributes(event)

            self.expect_start('name')
            name = self.read_text('name')
            value = self.read_value(depth)
            self.expect_end('member')

            if name in members:
                logger.warning(f"Duplicate struct member '{name}' at {event.position}, keeping the last one")
            members[name] = value

    def _read_array(self, start: XmlEvent, depth: int) -> Array:
        self._check_depth(start, depth)
        self.expect_start('data')
        items: List[Value] = []
        while True:
            event = self._next_significant('<value> or </data>')
            if event.kind == END and event.name == 'data':
                break
            if event.kind != START or event.name != 'value':
                raise UnexpectedXml('<value> or </data>', event.position)
            self._check_attributes(event)
            items.append(self._read_value_body(depth))
        self.expect_end('array')
        return Array(items)

    # --- envelopes -----------------------------------------------------

    def read_response(self) -> Union[Value, Fault]:
        self.expect_start('methodResponse')
        event = self._next_significant('<params> or <fault>')
        if event.kind == START and event.name == 'params':
            self._check_attributes(event)
            self.expect_start('param')
            result: Union[Value, Fault] = self.read_value()
            self.expect_end('param')
            self.expect_end('params')
        elif event.kind == START and event.name == 'fault':
            self._check_attributes(event)
            value = self.read_value()
            result = Fault.from_value(value)
            if result is None:
                raise InvalidValue(f"<fault> at {event.position} does not hold a struct with "
                                   f"an int faultCode and a string faultString")
            self.expect_end('fault')
        else:
            raise UnexpectedXml('<params> or <fault>', event.position)
        self.expect_end('methodResponse')
        self.expect_document_end()
        return result

    def read_request(self) -> Tuple[str, List[Value]]:
        self.expect_start('methodCall')
        self.expect_start('methodName')
        method_name = self.read_text('methodName').strip()
        params: List[Value] = []

        event = self._next_significant('<params> or </methodCall>')
        if event.kind == START and event.name == 'params':
            self._check_attributes(event)
            while True:
                event = self._next_significant('<param> or </params>')
                if event.kind == END and event.name == 'params':
                    break
                if event.kind != START or event.name != 'param':
                    raise UnexpectedXml('<param> or </params>', event.position)
                self._check_attributes(event)
                params.append(self.read_value())
                self.expect_end('param')
            self.expect_end('methodCall')
        elif not (event.kind == END and event.name == 'methodCall'):
            raise UnexpectedXml('<params> or </methodCall>', event.position)

        self.expect_document_end()
        return method_name, params


def parse_value(source, max_depth: int = DEFAULT_MAX_DEPTH) -> Value:
    """
    Parses a document whose root element is a single `<value>`.

    `source` may be bytes, a str or a binary file-like object.
    Raises `XmlError`, `InvalidValue` or `UnexpectedXml`.
    """
    reader = _EventReader(read_events(source), max_depth)
    value = reader.read_value()
    reader.expect_document_end()
    return value


def parse_response(source, max_depth: int = DEFAULT_MAX_DEPTH) -> Union[Value, Fault]:
    """
    Parses a `<methodResponse>` document.

    Returns the single return value, or a `Fault` when the server answered
    with `<fault>`.
    """
    return _EventReader(read_events(source), max_depth).read_response()


def parse_request(source, max_depth: int = DEFAULT_MAX_DEPTH) -> Tuple[str, List[Value]]:
    """Parses a `<methodCall>` document into its method name and parameters."""
    return _EventReader(read_events(source), max_depth).read_request()
