import random
from unittest.mock import Mock

import pytest
import requests
from conftest import make_offer

from layoverhq.booking import BookingFlow
from layoverhq.errors import BookingSubmissionError
from layoverhq.models import PaymentDetails
from layoverhq.submission import BookingSubmitter


@pytest.fixture
def order():
    flow = BookingFlow.start(make_offer("bk1", total=300.0)).update_passenger(
        0, first_name="Ada", last_name="Obi", date_of_birth="1990-04-12"
    )
    flow = flow.advance().add_extra("meal").advance()
    flow = flow.with_payment(
        PaymentDetails(
            card_number="4111111111111111",
            expiry_date="12/29",
            cvv="123",
            cardholder_name="Ada Obi",
        )
    )
    return flow.advance(rng=random.Random(3)).order


def submitter(status=201, body=None, error=None):
    session = Mock()
    if error is not None:
        session.post.side_effect = error
    else:
        resp = Mock(status_code=status, text="oops")
        resp.json.return_value = body
        session.post.return_value = resp
    return BookingSubmitter(base_url="https://book.test/", token="", session=session)


def test_submit_returns_service_booking_id(order):
    sub = submitter(body={"success": True, "data": {"bookingId": "BK-991", "status": "pending"}})
    confirmation = sub.submit(order)

    assert confirmation.booking_id == "BK-991"
    assert confirmation.status == "pending"
    assert confirmation.provisional_reference == order.booking_reference

    url = sub.session.post.call_args.args[0]
    payload = sub.session.post.call_args.kwargs["json"]
    assert url == "https://book.test/bookings"
    assert payload["totalPrice"] == pytest.approx(335.0)
    assert payload["bookingReference"] == order.booking_reference
    assert "Authorization" not in sub.session.post.call_args.kwargs["headers"]


def test_submit_accepts_flat_body(order):
    assert submitter(status=200, body={"id": 17}).submit(order).booking_id == "17"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"status": 500, "body": {}},
        {"body": {"success": True, "data": {}}},
        {"error": requests.Timeout("slow")},
    ],
)
def test_submit_failures(order, kwargs):
    with pytest.raises(BookingSubmissionError):
        submitter(**kwargs).submit(order)
