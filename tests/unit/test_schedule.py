"""Unit tests for installment schedule generation"""

import pytest
from datetime import date, timedelta
from cuotificador.domain.calculator import generate_installment_schedule
from cuotificador.domain.exceptions import InvalidInstallmentCount


def test_schedule_equal_split():
    """Test schedule with evenly divisible total"""
    schedule = generate_installment_schedule(112500, 6)

    assert len(schedule) == 6
    assert all(inst.amount_cents == 1875000 for inst in schedule)
    assert [inst.number for inst in schedule] == [1, 2, 3, 4, 5, 6]


def test_schedule_rounding():
    """Test last installment absorbs the remainder"""
    schedule = generate_installment_schedule(1000.01, 3)

    assert [inst.amount_cents for inst in schedule] == [33333, 33333, 33335]
    assert sum(inst.amount_cents for inst in schedule) == 100001


def test_schedule_dates():
    """Test monthly due dates from the start date"""
    start = date(2026, 1, 15)
    schedule = generate_installment_schedule(300, 3, interval_days=30, start_date=start)

    assert schedule[0].due_date == start
    assert schedule[1].due_date == start + timedelta(days=30)
    assert schedule[2].due_date == start + timedelta(days=60)


def test_schedule_default_start_is_one_interval_ahead():
    schedule = generate_installment_schedule(100, 2, interval_days=15)
    assert schedule[0].due_date == date.today() + timedelta(days=15)


def test_schedule_zero_total():
    assert generate_installment_schedule(0, 3) == []


def test_schedule_rejects_invalid_count():
    with pytest.raises(InvalidInstallmentCount):
        generate_installment_schedule(100, 0)
