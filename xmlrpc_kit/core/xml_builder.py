"""
XML-RPC serializer.

Renders Value trees into the nested `<value>...</value>` XML text used on the
wire, one element per line, plus the `<methodCall>` / `<methodResponse>`
envelopes around them.
"""
import base64
import io
from datetime import datetime
from typing import Callable, Iterable, List, Union

from .models import (Array, Base64, Bool, DateTime, Double, Fault, Int, String, Struct,
                     Value, is_value, to_value)

XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>'


def escape_xml(text: str) -> str:
    """
    Escapes `&` and `<` for use as element text.

    `>` is left alone, except when it closes a `]]>` sequence, which is not
    allowed in character data. Carriage returns are written as a character
    reference so that parsers do not normalize them into newlines.
    """
    text = text.replace('&', '&amp;').replace('<', '&lt;')
    if ']]>' in text:
        text = text.replace(']]>', ']]&gt;')
    if '\r' in text:
        text = text.replace('\r', '&#13;')
    return text


def format_datetime(value: datetime) -> str:
    """
    `YYYYMMDDTHH:MM:SS`, with fraction and UTC offset only when present.

    The offset is `Z`, `±HH:MM`, or `±HH:MM:SS` for sub-minute offsets.
    """
    text = (f"{value.year:04d}{value.month:02d}{value.day:02d}"
            f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}")
    if value.microsecond:
        text += f".{value.microsecond:06d}"
    offset = value.utcoffset()
    if offset is not None:
        total_seconds = int(offset.total_seconds())
        if total_seconds == 0:
            text += 'Z'
        else:
            sign = '+' if total_seconds > 0 else '-'
            hours, rest = divmod(abs(total_seconds), 3600)
            minutes, seconds = divmod(rest, 60)
            text += f"{sign}{hours:02d}:{minutes:02d}"
            if seconds:
                text += f":{seconds:02d}"
    return text


def format_value(value: Value) -> str:
    """단일 Value를 `<value>...</value>` XML 문자열로 변환합니다."""
    lines: List[str] = []
    _build_value(value, lines.append)
    return ''.join(lines)


def write_value(value: Value, sink) -> None:
    """
    Writes the XML for `value` to `sink`.

    Text sinks receive `str`; binary sinks (buffered/raw streams or files
    opened in a binary mode) receive UTF-8 bytes. Errors raised by the sink
    propagate unchanged, possibly after part of the output was written.
    """
    if _is_binary_sink(sink):
        _build_value(value, lambda line: sink.write(line.encode('utf-8')))
    else:
        _build_value(value, sink.write)


def _is_binary_sink(sink) -> bool:
    if isinstance(sink, (io.RawIOBase, io.BufferedIOBase)):
        return True
    if isinstance(sink, io.TextIOBase):
        return False
    return 'b' in getattr(sink, 'mode', '')


def _build_value(value: Value, write: Callable[[str], object]) -> None:
    """Value 하나를 재귀적으로 한 줄씩 출력합니다."""
    if not is_value(value):
        raise TypeError(f"Not an XML-RPC value: {value!r}")

    write('<value>\n')

    if isinstance(value, Int):
        write(f"<i4>{value.value}</i4>\n")
    elif isinstance(value, Bool):
        write(f"<boolean>{'1' if value.value else '0'}</boolean>\n")
    elif isinstance(value, String):
        write(f"<string>{escape_xml(value.value)}</string>\n")
    elif isinstance(value, Double):
        write(f"<double>{value.value!r}</double>\n")
    elif isinstance(value, DateTime):
        write(f"<dateTime.iso8601>{format_datetime(value.value)}</dateTime.iso8601>\n")
    elif isinstance(value, Base64):
        write(f"<base64>{base64.b64encode(value.value).decode('ascii')}</base64>\n")
    elif isinstance(value, Struct):
        write('<struct>\n')
        for name, member in value.items():
            write('<member>\n')
            write(f"<name>{escape_xml(name)}</name>\n")
            _build_value(member, write)
            write('</member>\n')
        write('</struct>\n')
    elif isinstance(value, Array):
        write('<array>\n')
        write('<data>\n')
        for item in value:
            _build_value(item, write)
        write('</data>\n')
        write('</array>\n')

    write('</value>\n')


def build_request(method_name: str, params: Iterable[Union[Value, object]] = ()) -> str:
    """
    `<methodCall>` 문서를 생성합니다.

    Parameters may be Values or native scalars accepted by `to_value`.
    """
    lines: List[str] = [XML_DECLARATION + '\n', '<methodCall>\n',
                        f"<methodName>{escape_xml(method_name)}</methodName>\n",
                        '<params>\n']
    for param in params:
        lines.append('<param>\n')
        _build_value(to_value(param), lines.append)
        lines.append('</param>\n')
    lines.extend(['</params>\n', '</methodCall>\n'])
    return ''.join(lines)


def build_response(value: Value) -> str:
    """A successful `<methodResponse>` carrying a single return value."""
    lines: List[str] = [XML_DECLARATION + '\n', '<methodResponse>\n',
                        '<params>\n', '<param>\n']
    _build_value(value, lines.append)
    lines.extend(['</param>\n', '</params>\n', '</methodResponse>\n'])
    return ''.join(lines)


def build_fault(fault: Fault) -> str:
    """A `<methodResponse>` carrying a `<fault>`."""
    lines: List[str] = [XML_DECLARATION + '\n', '<methodResponse>\n', '<fault>\n']
    _build_value(fault.to_value(), lines.append)
    lines.extend(['</fault>\n', '</methodResponse>\n'])
    return ''.join(lines)
