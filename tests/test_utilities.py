"""Units, time series, messages and logging."""

import logging

import pytest

from ccbmtk import InputError, Logger, MessageData, Q_, TimeSeries, TimeSeriesError
from ccbmtk.utility_functions import check_for_quantity, map_units, parse_bool, phc


@pytest.mark.parametrize(
    "value, unit, expected",
    [
        (5, "PgC", 5.0),
        ("5", "PgC", 5.0),
        ("5000 Tg", "PgC", 5.0),
        (Q_(1, "Sverdrup"), "m**3/s", 1e6),
        ("280 ppmv", "ppm", 280.0),
        ("0.2", "delta_degC", 0.2),
    ],
)
def test_check_for_quantity(value, unit, expected):
    assert check_for_quantity(value, unit).magnitude == pytest.approx(expected)
    assert map_units(value, unit) == pytest.approx(expected)


@pytest.mark.parametrize("value", [True, [1, 2], "3 kg", "xyzzy"])
def test_check_for_quantity_fails(value):
    with pytest.raises(InputError):
        check_for_quantity(value, "PgC")


@pytest.mark.parametrize(
    "value, expected",
    [(True, True), ("yes", True), ("1", True), (0, False), ("Off", False), ("false", False)],
)
def test_parse_bool(value, expected):
    assert parse_bool(value) is expected


def test_parse_bool_fails():
    with pytest.raises(InputError):
        parse_bool("maybe")


def test_phc():
    assert phc(1e-8) == pytest.approx(8.0)


def test_time_series():
    ts = TimeSeries("y", allow_interp=True)
    assert ts.size() == 0
    with pytest.raises(TimeSeriesError):
        ts.get(1900)

    ts.set(1900, 1.0)
    ts.set(1800, 0.0)
    assert ts.first_date() == 1800
    assert ts.last_date() == 1900
    assert ts.get(1850) == pytest.approx(0.5)
    assert ts.exists(1800)
    with pytest.raises(TimeSeriesError):
        ts.get(1950)

    ts.truncate(1850)
    assert ts.size() == 1
    assert list(ts.to_series().index) == [1800.0]


def test_time_series_without_interpolation():
    ts = TimeSeries("c")
    ts.set(1, 1.0)
    ts.set(3, 3.0)
    assert ts.get(3) == 3.0
    with pytest.raises(TimeSeriesError):
        ts.get(2)


def test_message_data():
    m = MessageData(date=1900, value="1.0", unit="PgC")
    assert m.has_date()
    assert m.date == 1900.0
    assert not MessageData(value=1).has_date()


def test_logger_writes_file(tmp_path):
    log = Logger()
    log.open("test-component", echo_to_screen=False, level=logging.DEBUG,
             to_file=True, log_dir=str(tmp_path))
    assert log.is_open()
    log.debug("first message")
    log.severe("second message")
    log.close()
    assert not log.is_open()
    # closed loggers drop messages
    log.info("dropped")

    text = (tmp_path / "test-component.log").read_text()
    assert "first message" in text
    assert "SEVERE: second message" in text
    assert "dropped" not in text
