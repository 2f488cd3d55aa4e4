# tests/test_ordered_log.py
import pytest

from logistics_backend.shared.domain.ordered_log import OrderedLog


def test_append_keeps_insertion_order():
    log = OrderedLog()
    for n in range(3):
        log.append({"n": n})

    assert [entry["n"] for entry in log] == [0, 1, 2]
    assert log.latest() == {"n": 2}
    assert len(log) == 3


def test_cap_evicts_oldest_entries():
    log = OrderedLog(cap=3)
    for n in range(5):
        log.append({"n": n})

    assert [entry["n"] for entry in log.entries()] == [2, 3, 4]


def test_existing_entries_over_cap_are_trimmed_on_load():
    log = OrderedLog([{"n": n} for n in range(10)], cap=4)
    assert [entry["n"] for entry in log.entries()] == [6, 7, 8, 9]


def test_entries_are_copies():
    source = [{"status": "pending"}]
    log = OrderedLog(source)

    log.entries()[0]["status"] = "tampered"
    log.latest()["status"] = "tampered"

    assert log.latest() == {"status": "pending"}
    assert source == [{"status": "pending"}]


def test_empty_log():
    log = OrderedLog()
    assert log.latest() is None
    assert not log


def test_cap_must_be_positive():
    with pytest.raises(ValueError):
        OrderedLog(cap=0)
