from datetime import date, datetime
from typing import NamedTuple

from dateutil.relativedelta import relativedelta


class PlannedInstallment(NamedTuple):
    installment_no: int
    due_date: datetime
    amount: int


def plan_installments(total_amount: int, count: int, today: date) -> list[PlannedInstallment]:
    """
    Split `total_amount` into `count` monthly installments due on the 1st of each
    following month. The division remainder goes to the last installment.
    """
    if count < 1:
        raise ValueError("Installment count must be at least 1")

    per = total_amount // count
    remainder = total_amount - per * count
    first_of_month = datetime(today.year, today.month, 1)
    return [
        PlannedInstallment(
            installment_no=i + 1,
            due_date=first_of_month + relativedelta(months=i + 1),
            amount=per + (remainder if i == count - 1 else 0),
        )
        for i in range(count)
    ]


def order_status_after_payment(installment_statuses: list[str]) -> str:
    return "PAID_COMPLETE" if all(s == "PAID" for s in installment_statuses) else "PARTIALLY_PAID"
