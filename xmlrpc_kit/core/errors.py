"""
Error types for XML-RPC encoding, decoding and remote calls.

The hierarchy has three layers:

    RequestError            a call could not be executed
      TransportError        the HTTP exchange failed (wraps the transport's error)
      ParseError            the response could not be decoded
        XmlError            the document is not well-formed XML
        InvalidValue        a scalar's text does not match its declared type
        UnexpectedXml       a tag, attribute or text is not allowed at a position

A `<fault>` response is not an error of this hierarchy. It decodes
successfully into a `Fault` (see models.py) and is returned to the caller.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TextPosition:
    """A 1-based line/column position inside an XML document."""
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


class XmlRpcError(Exception):
    """Base class of every error raised by xmlrpc_kit."""


class RequestError(XmlRpcError):
    """
    A request could not be executed.

    Either a lower-level failure (the HTTP exchange failed) or a problem with
    the server's answer (it does not implement XML-RPC correctly). A valid
    `<fault>` response never produces this error.
    """


class TransportError(RequestError):
    """The HTTP exchange failed before a response document was available."""

    def __init__(self, error: BaseException):
        super().__init__(error)
        self.error = error
        self.__cause__ = error

    @classmethod
    def wrap(cls, error: BaseException) -> "TransportError":
        if isinstance(error, cls):
            return error
        return cls(error)

    def __str__(self) -> str:
        return f"transport error: {self.error}"


class ParseError(RequestError):
    """The response document could not be decoded."""


class XmlError(ParseError):
    """
    The underlying document is malformed, or could not be read.

    Wraps the tokenizer's own error (`xml.parsers.expat.ExpatError`) or the
    `OSError` raised while reading the source.
    """

    def __init__(self, error: BaseException, position: Optional[TextPosition] = None):
        super().__init__(error)
        self.error = error
        self.position = position
        self.__cause__ = error

    @classmethod
    def wrap(cls, error: BaseException) -> "XmlError":
        if isinstance(error, cls):
            return error
        position = None
        # ExpatError에는 lineno(1부터)와 offset(0부터)이 들어 있습니다.
        lineno = getattr(error, 'lineno', None)
        offset = getattr(error, 'offset', None)
        if lineno is not None and offset is not None:
            position = TextPosition(lineno, offset + 1)
        return cls(error, position)

    def __str__(self) -> str:
        return f"malformed XML: {self.error}"


class InvalidValue(ParseError):
    """
    Text content could not be parsed as the declared XML-RPC type.

    For example, `<value><int>AAA</int></value>` describes an invalid value.
    """

    def __init__(self, description: str):
        super().__init__(description)
        self.description = description

    def __str__(self) -> str:
        return f"invalid value: {self.description}"


class UnexpectedXml(ParseError):
    """Found an unexpected tag, attribute or text."""

    def __init__(self, expected: str, position: TextPosition):
        super().__init__(expected, position)
        # A short description of what was expected instead.
        self.expected = expected
        self.position = position

    def __str__(self) -> str:
        return f"expected {self.expected} at {self.position}"
