from datetime import date, datetime

import pytest

from tattoo_crm.domain.orders.installments import order_status_after_payment, plan_installments


def test_remainder_goes_to_last_installment():
    plan = plan_installments(10000, 3, date(2025, 1, 15))
    assert [p.amount for p in plan] == [3333, 3333, 3334]
    assert sum(p.amount for p in plan) == 10000
    assert [p.installment_no for p in plan] == [1, 2, 3]
    assert [p.due_date for p in plan] == [datetime(2025, 2, 1), datetime(2025, 3, 1), datetime(2025, 4, 1)]


def test_due_dates_roll_over_the_year():
    plan = plan_installments(100, 2, date(2024, 12, 31))
    assert [p.due_date for p in plan] == [datetime(2025, 1, 1), datetime(2025, 2, 1)]


def test_count_must_be_positive():
    with pytest.raises(ValueError):
        plan_installments(1000, 0, date(2025, 1, 1))


def test_order_status():
    assert order_status_after_payment(["PAID", "PAID"]) == "PAID_COMPLETE"
    assert order_status_after_payment(["PAID", "PENDING"]) == "PARTIALLY_PAID"
