import datetime
import decimal

import pytest

from exasol_client.converter import ParameterBatch, convert_parameter, convert_result_value
from exasol_client.errors import InvalidArgType, InvalidValuesCount
from exasol_client.types import Column, ColumnType


def column(type_name: str, **kwargs) -> Column:
    return Column(name="C", data_type=ColumnType(type=type_name, **kwargs))


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (123, "123.000000"),
        (1.5, "1.500000"),
        (-0.25, "-0.250000"),
        (decimal.Decimal("2.1234567"), "2.123457"),
    ],
)
def test_double_renders_six_fraction_digits(value, expected: str) -> None:
    assert str(convert_parameter(value, ColumnType("DOUBLE"))) == expected


@pytest.mark.parametrize("value", ["1.5", True, None])
def test_double_rejects_non_numbers(value) -> None:
    with pytest.raises(InvalidArgType):
        convert_parameter(value, ColumnType("DOUBLE"))


@pytest.mark.parametrize("type_name", ["TIMESTAMP", "TIMESTAMP WITH LOCAL TIME ZONE"])
def test_timestamp_uses_wall_clock_fields(type_name: str) -> None:
    zone = datetime.timezone(datetime.timedelta(hours=5))
    value = datetime.datetime(2024, 3, 7, 4, 5, 6, 789, tzinfo=zone)
    assert convert_parameter(value, ColumnType(type_name)) == "2024-03-07 04:05:06.000789"


def test_timestamp_string_passes_through() -> None:
    assert convert_parameter("2024-01-01 00:00:00", ColumnType("TIMESTAMP")) == "2024-01-01 00:00:00"


def test_timestamp_rejects_plain_numbers() -> None:
    with pytest.raises(InvalidArgType):
        convert_parameter(1700000000, ColumnType("TIMESTAMP"))


def test_date_conversion() -> None:
    assert convert_parameter(datetime.date(987, 1, 2), ColumnType("DATE")) == "0987-01-02"
    assert convert_parameter("2020-02-02", ColumnType("DATE")) == "2020-02-02"
    with pytest.raises(InvalidArgType):
        convert_parameter(3.5, ColumnType("DATE"))


def test_boolean_must_be_bool() -> None:
    assert convert_parameter(False, ColumnType("BOOLEAN")) is False
    with pytest.raises(InvalidArgType):
        convert_parameter(1, ColumnType("BOOLEAN"))


def test_other_types_pass_through() -> None:
    assert convert_parameter({"x": 1}, ColumnType("VARCHAR")) == {"x": 1}


def test_batch_distributes_values_round_robin() -> None:
    columns = [column("DECIMAL"), column("VARCHAR"), column("DECIMAL")]
    batch = ParameterBatch.build(columns, [1, "a", 10, 2, "b", 20])
    assert batch.num_rows == 2
    assert batch.wire_data() == [[1, 2], ["a", "b"], [10, 20]]


def test_batch_converts_per_column_type() -> None:
    batch = ParameterBatch.build([column("DOUBLE"), column("BOOLEAN")], [1, True])
    assert batch.wire_data() == [[decimal.Decimal("1.000000")], [True]]


def test_batch_rejects_uneven_value_count() -> None:
    with pytest.raises(InvalidValuesCount):
        ParameterBatch.build([column("DECIMAL"), column("DECIMAL")], [1, 2, 3])


def test_batch_without_columns_rejects_values() -> None:
    assert ParameterBatch.build([], []).num_rows == 0
    with pytest.raises(InvalidValuesCount):
        ParameterBatch.build([], [1])


def test_batch_rejects_named_parameters() -> None:
    with pytest.raises(InvalidArgType):
        ParameterBatch.build([column("DECIMAL")], {"id": 1})


def test_result_decimal_conversion() -> None:
    assert convert_result_value(15.0, ColumnType("DECIMAL", precision=18, scale=0)) == 15
    assert convert_result_value(1.5, ColumnType("DECIMAL", precision=18, scale=1)) == 1.5
    assert convert_result_value("15", ColumnType("DECIMAL", precision=36, scale=0)) == "15"


@pytest.mark.parametrize(
    "value",
    [float("nan"), float("inf"), float("-inf"), decimal.Decimal("NaN"), decimal.Decimal("-Infinity"), 10**400],
)
def test_double_rejects_values_without_json_form(value) -> None:
    with pytest.raises(InvalidArgType) as excinfo:
        convert_parameter(value, ColumnType("DOUBLE"))
    assert excinfo.value.data_type == "DOUBLE"
