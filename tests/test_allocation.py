from tattoo_crm.domain.billing.allocation import (
    DEFAULT_SPLIT,
    Split,
    allocate_payment,
    bill_status_after_payment,
    normalize_split,
    round_div,
    totals_from_cart_snapshot,
)


def test_round_div_rounds_half_up():
    assert round_div(5, 2) == 3
    assert round_div(-5, 2) == -2
    assert round_div(7007000, 10000) == 701


def test_normalize_split():
    assert normalize_split(8000, 4000) == Split(6667, 3333)
    assert normalize_split(-5, 20000) == Split(0, 10000)
    assert normalize_split(0, 0) == Split(0, 0)


def test_single_payment_settles_target_split():
    assert allocate_payment(1000, 1000, DEFAULT_SPLIT) == (700, 300)


def test_partial_payments_converge_on_target():
    artist1, shop1 = allocate_payment(500, 1001, DEFAULT_SPLIT)
    assert artist1 + shop1 == 500
    artist2, shop2 = allocate_payment(501, 1001, DEFAULT_SPLIT, artist1, shop1)
    assert artist2 + shop2 == 501
    assert (artist1 + artist2, shop1 + shop2) == (701, 300)


def test_overpayment_and_refund_use_configured_split():
    assert allocate_payment(100, 1000, DEFAULT_SPLIT, 700, 300) == (70, 30)
    assert allocate_payment(-100, 1000, DEFAULT_SPLIT, 700, 300) == (-70, -30)


def test_bill_status():
    assert bill_status_after_payment("VOID", 100, 50) == "VOID"
    assert bill_status_after_payment("OPEN", 100, 100) == "SETTLED"
    assert bill_status_after_payment("SETTLED", 50, 100) == "OPEN"


def test_totals_from_cart_snapshot():
    totals = totals_from_cart_snapshot(
        {
            "items": [
                {"serviceId": 1, "serviceName": "Arm piece", "basePrice": 1000, "finalPrice": 1200},
                {"name": "Touch up", "finalPrice": 500},
            ]
        }
    )
    assert totals.list_total == 1500
    assert totals.bill_total == 1700
    assert totals.discount_total == 0
    assert [line.name for line in totals.lines] == ["Arm piece", "Touch up"]
    assert totals_from_cart_snapshot({"items": []}) is None
    assert totals_from_cart_snapshot(None) is None
