import dataclasses
from datetime import datetime, timedelta, timezone

import pytest
from xmlrpc_kit.core.models import (Array, Base64, Bool, DateTime, Double, Fault, Int, String, Struct,
                                    fault_from_value, to_native, to_value)

NOW = datetime(2025, 3, 1, 12, 30, 0)

# (입력 값, 예상 Value)
TO_VALUE_TEST_CASES = [
    (5, Int(5)),
    (True, Bool(True)),
    (False, Bool(False)),
    ("text", String("text")),
    (2.5, Double(2.5)),
    (NOW, DateTime(NOW)),
    (b"\x00\x01", Base64(b"\x00\x01")),
    (bytearray(b"ab"), Base64(b"ab")),
    (Int(3), Int(3)),
]


@pytest.mark.parametrize("native, expected", TO_VALUE_TEST_CASES)
def test_to_value(native, expected):
    assert to_value(native) == expected


@pytest.mark.parametrize("native", [None, {'a': 1}, [1, 2], (1,), object()])
def test_to_value_rejects_collections_and_unknown_types(native):
    with pytest.raises(TypeError):
        to_value(native)


def test_int_must_fit_in_32_bits():
    assert Int(2**31 - 1).value == 2**31 - 1
    assert Int(-2**31).value == -2**31
    with pytest.raises(ValueError):
        Int(2**31)
    with pytest.raises(ValueError):
        to_value(-2**31 - 1)
    with pytest.raises(TypeError):
        Int(True)


def test_variants_are_not_interchangeable():
    assert Int(1) != Bool(True)
    assert Int(1) != Double(1.0)
    assert String("1") != Int(1)
    assert Double(1) == Double(1.0)


def test_datetime_equality_keeps_the_offset():
    noon_utc = DateTime(datetime(2024, 1, 2, 12, 0, tzinfo=timezone.utc))
    same_instant = DateTime(datetime(2024, 1, 2, 9, 0, tzinfo=timezone(timedelta(hours=-3))))
    assert noon_utc.value == same_instant.value
    assert noon_utc != same_instant
    assert noon_utc == DateTime(datetime(2024, 1, 2, 12, 0, tzinfo=timezone(timedelta(0))))
    assert hash(noon_utc) == hash(DateTime(datetime(2024, 1, 2, 12, 0, tzinfo=timezone.utc)))
    assert DateTime(NOW) != DateTime(NOW.replace(tzinfo=timezone.utc))


def test_datetime_rejects_sub_second_offsets():
    with pytest.raises(ValueError):
        DateTime(datetime(2024, 1, 2, tzinfo=timezone(timedelta(seconds=1, microseconds=5))))


def test_values_are_immutable():
    value = Struct({'a': Int(1)})
    with pytest.raises(dataclasses.FrozenInstanceError):
        value.members = {}
    with pytest.raises(TypeError):
        value.members['b'] = Int(2)
    with pytest.raises(dataclasses.FrozenInstanceError):
        Int(1).value = 2


def test_struct_iterates_in_sorted_order():
    value = Struct({'zeta': Int(1), 'alpha': Int(2), 'Mid': Int(3)})
    assert list(value) == ['Mid', 'alpha', 'zeta']
    assert value == Struct({'Mid': Int(3), 'zeta': Int(1), 'alpha': Int(2)})
    assert hash(value) == hash(Struct({'alpha': Int(2), 'Mid': Int(3), 'zeta': Int(1)}))
    assert 'alpha' in value and value['alpha'] == Int(2) and len(value) == 3
    assert value.get('missing') is None


def test_struct_copies_its_input():
    members = {'a': Int(1)}
    value = Struct(members)
    members['b'] = Int(2)
    assert 'b' not in value


def test_composites_only_hold_values():
    with pytest.raises(TypeError):
        Struct({'a': 1})
    with pytest.raises(TypeError):
        Struct({1: Int(1)})
    with pytest.raises(TypeError):
        Array([Int(1), "two"])


def test_to_native():
    value = Struct({'list': Array([Int(1), Bool(False), Base64(b'x')]), 'name': String('n')})
    assert to_native(value) == {'list': [1, False, b'x'], 'name': 'n'}


# --- Fault ---

def test_fault_from_struct():
    value = Struct({'faultCode': Int(7), 'faultString': String('bad')})
    assert Fault.from_value(value) == Fault(fault_code=7, fault_string='bad')
    assert fault_from_value(value) == Fault(7, 'bad')


def test_fault_ignores_extra_members():
    value = Struct({'faultCode': Int(7), 'faultString': String('bad'), 'extra': Int(0)})
    assert Fault.from_value(value) == Fault(7, 'bad')


@pytest.mark.parametrize("test_name, value", [
    ("Code_As_String", Struct({'faultCode': String('7'), 'faultString': String('bad')})),
    ("Message_As_Int", Struct({'faultCode': Int(7), 'faultString': Int(1)})),
    ("Missing_String", Struct({'faultCode': Int(7)})),
    ("Missing_Code", Struct({'faultString': String('bad')})),
    ("Not_A_Struct", Array([Int(7), String('bad')])),
    ("Scalar", String('bad')),
    ("Native_Dict", {'faultCode': 7, 'faultString': 'bad'}),
])
def test_not_a_fault(test_name, value):
    assert Fault.from_value(value) is None


def test_fault_example_end_to_end():
    value = Struct({'faultCode': Int(4), 'faultString': String('Too many parameters.')})
    fault = Fault.from_value(value)
    assert fault == Fault(fault_code=4, fault_string='Too many parameters.')
    assert fault.to_value() == value
