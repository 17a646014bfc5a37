"""
Core Data Models for XML-RPC values.

This module defines the closed set of value types understood by XML-RPC,
one immutable dataclass per wire type, plus the `Fault` structure that a
`<fault>` response decodes into.

    Int       <i4> / <int>         signed 32-bit integer
    Bool      <boolean>            0 == False, 1 == True
    String    <string>
    Double    <double>             64-bit float
    DateTime  <dateTime.iso8601>   no timezone conversion is ever applied
    Base64    <base64>             arbitrary bytes
    Struct    <struct>             named members, iterated in sorted name order
    Array     <array>              ordered, heterogeneous values
"""
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, ClassVar, Iterable, Iterator, Mapping, Optional, Tuple, Union

INT_MIN = -2**31
INT_MAX = 2**31 - 1


@dataclass(frozen=True)
class Int:
    value: int
    tag: ClassVar[str] = 'i4'

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(f"Int requires an int, got {type(self.value).__name__}")
        if not INT_MIN <= self.value <= INT_MAX:
            raise ValueError(f"Int value {self.value} does not fit in 32 bits")


@dataclass(frozen=True)
class Bool:
    value: bool
    tag: ClassVar[str] = 'boolean'

    def __post_init__(self):
        if not isinstance(self.value, bool):
            raise TypeError(f"Bool requires a bool, got {type(self.value).__name__}")


@dataclass(frozen=True)
class String:
    value: str
    tag: ClassVar[str] = 'string'

    def __post_init__(self):
        if not isinstance(self.value, str):
            raise TypeError(f"String requires a str, got {type(self.value).__name__}")


@dataclass(frozen=True)
class Double:
    value: float
    tag: ClassVar[str] = 'double'

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise TypeError(f"Double requires a float, got {type(self.value).__name__}")
        object.__setattr__(self, 'value', float(self.value))


@dataclass(frozen=True)
class DateTime:
    """
    A calendar timestamp. Naive and aware datetimes are kept exactly as given.

    Two values are equal only when they show the same wall-clock time with the
    same UTC offset; `12:00Z` and `09:00-03:00` are different values.
    """
    value: datetime
    tag: ClassVar[str] = 'dateTime.iso8601'

    def __post_init__(self):
        if not isinstance(self.value, datetime):
            raise TypeError(f"DateTime requires a datetime, got {type(self.value).__name__}")
        offset = self.value.utcoffset()
        if offset is not None and offset.microseconds:
            raise ValueError(f"UTC offset {offset} has sub-second precision")

    def _key(self):
        return self.value, self.value.utcoffset()

    def __eq__(self, other):
        if not isinstance(other, DateTime):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())


@dataclass(frozen=True)
class Base64:
    value: bytes
    tag: ClassVar[str] = 'base64'

    def __post_init__(self):
        if not isinstance(self.value, (bytes, bytearray)):
            raise TypeError(f"Base64 requires bytes, got {type(self.value).__name__}")
        object.__setattr__(self, 'value', bytes(self.value))


@dataclass(frozen=True)
class Struct:
    """
    A mapping of member names to values.

    The members are copied into a read-only mapping ordered by name, so two
    structs with the same members always iterate (and serialize) the same
    way, whatever order they were built in.
    """
    members: Mapping[str, 'Value'] = field(default_factory=dict)
    tag: ClassVar[str] = 'struct'

    def __post_init__(self):
        for name, value in self.members.items():
            if not isinstance(name, str):
                raise TypeError(f"Struct member names must be str, got {type(name).__name__}")
            if not isinstance(value, VALUE_TYPES):
                raise TypeError(f"Struct member '{name}' is not an XML-RPC value: {value!r}")
        ordered = {name: self.members[name] for name in sorted(self.members)}
        object.__setattr__(self, 'members', MappingProxyType(ordered))

    def __hash__(self):
        return hash(tuple(self.members.items()))

    def __getitem__(self, name: str) -> 'Value':
        return self.members[name]

    def __contains__(self, name: object) -> bool:
        return name in self.members

    def __iter__(self) -> Iterator[str]:
        return iter(self.members)

    def __len__(self) -> int:
        return len(self.members)

    def get(self, name: str, default: Optional['Value'] = None) -> Optional['Value']:
        return self.members.get(name, default)

    def items(self):
        return self.members.items()


@dataclass(frozen=True)
class Array:
    """An ordered list of arbitrary (heterogeneous) values."""
    items: Tuple['Value', ...] = ()
    tag: ClassVar[str] = 'array'

    def __post_init__(self):
        items = tuple(self.items)
        for index, item in enumerate(items):
            if not isinstance(item, VALUE_TYPES):
                raise TypeError(f"Array item {index} is not an XML-RPC value: {item!r}")
        object.__setattr__(self, 'items', items)

    def __getitem__(self, index: int) -> 'Value':
        return self.items[index]

    def __iter__(self) -> Iterator['Value']:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


Value = Union[Int, Bool, String, Double, DateTime, Base64, Struct, Array]
VALUE_TYPES = (Int, Bool, String, Double, DateTime, Base64, Struct, Array)


def is_value(obj: Any) -> bool:
    return isinstance(obj, VALUE_TYPES)


def to_value(native: Any) -> Value:
    """
    Wraps a native Python scalar into the matching Value variant.

    Values are returned unchanged. Collections are rejected: build `Struct`
    and `Array` directly so that every member is an explicit Value.
    """
    if isinstance(native, VALUE_TYPES):
        return native
    # bool은 int의 하위 클래스이므로 먼저 확인해야 합니다.
    if isinstance(native, bool):
        return Bool(native)
    if isinstance(native, int):
        return Int(native)
    if isinstance(native, str):
        return String(native)
    if isinstance(native, float):
        return Double(native)
    if isinstance(native, datetime):
        return DateTime(native)
    if isinstance(native, (bytes, bytearray)):
        return Base64(bytes(native))
    raise TypeError(f"Cannot convert {type(native).__name__} to an XML-RPC value")


def to_native(value: Value) -> Any:
    """Unwraps a Value tree into plain Python objects (dict, list and scalars)."""
    if isinstance(value, Struct):
        return {name: to_native(member) for name, member in value.items()}
    if isinstance(value, Array):
        return [to_native(item) for item in value]
    if isinstance(value, VALUE_TYPES):
        return value.value
    raise TypeError(f"Not an XML-RPC value: {value!r}")


@dataclass(frozen=True)
class Fault:
    """
    A `<fault>` response: the remote call failed.

    The XML-RPC specification requires a fault to carry a `faultCode` (int)
    and a `faultString` (string). Servers that add members of their own
    (a trace, a detail string) still produce a fault.
    """
    fault_code: int
    fault_string: str

    @classmethod
    def from_value(cls, value: Any) -> Optional['Fault']:
        """
        Creates a `Fault` from a `Struct` holding an `Int` member `faultCode`
        and a `String` member `faultString`. Other members are ignored.

        Returns None for any other value. Never raises.
        """
        if not isinstance(value, Struct):
            return None
        code = value.get('faultCode')
        message = value.get('faultString')
        if isinstance(code, Int) and isinstance(message, String):
            return cls(fault_code=code.value, fault_string=message.value)
        return None

    def to_value(self) -> Struct:
        return Struct({
            'faultCode': Int(self.fault_code),
            'faultString': String(self.fault_string),
        })

    def __str__(self) -> str:
        return f"<Fault {self.fault_code}: {self.fault_string}>"


def fault_from_value(value: Any) -> Optional[Fault]:
    return Fault.from_value(value)


def value_items(values: Iterable[Any]) -> Tuple[Value, ...]:
    """Converts call parameters (Values or native scalars) into a tuple of Values."""
    return tuple(to_value(v) for v in values)
