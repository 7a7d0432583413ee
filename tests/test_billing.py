import asyncio
import json
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import httpx

from healthme.services.billing_client import BillingClient, booking_transaction

APPOINTMENT = SimpleNamespace(
    id=12,
    patient_id=3,
    practitioner_id=4,
    date=date(2024, 5, 1),
    time_slot="10:00",
)

def test_booking_transaction_payload():
    record = booking_transaction(APPOINTMENT, SimpleNamespace(consultation_fee=Decimal("75.50")))

    assert record["referenceId"] == "APPT-12"
    assert record["transactionType"] == "Billing"
    assert record["status"] == "Pending"
    assert record["amount"] == "75.50"
    assert record["patient"] == 3
    assert record["practitioner"] == 4
    assert record["appointment"] == 12
    assert record["description"] == "Consultation on 2024-05-01 at 10:00"

def test_missing_fee_bills_zero():
    record = booking_transaction(APPOINTMENT, SimpleNamespace(consultation_fee=None))
    assert record["amount"] == "0"

def test_disabled_client_skips_delivery():
    client = BillingClient(None)

    assert not client.enabled
    assert asyncio.run(client.record_transaction({"referenceId": "APPT-1"})) is False

def test_posts_record_to_transactions_endpoint():
    sent = []

    def handler(request):
        sent.append(request)
        return httpx.Response(201, json={"ok": True})

    client = BillingClient("http://billing.test/api/", transport=httpx.MockTransport(handler))
    delivered = asyncio.run(client.record_transaction({"referenceId": "APPT-1", "amount": "50.00"}))

    assert delivered is True
    assert len(sent) == 1
    assert sent[0].method == "POST"
    assert str(sent[0].url) == "http://billing.test/api/transactions"
    assert json.loads(sent[0].content) == {"referenceId": "APPT-1", "amount": "50.00"}

def test_server_error_is_reported_not_raised():
    client = BillingClient(
        "http://billing.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(500))
    )
    assert asyncio.run(client.record_transaction({"referenceId": "APPT-1"})) is False

def test_connection_error_is_reported_not_raised():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = BillingClient("http://billing.test", transport=httpx.MockTransport(handler))
    assert asyncio.run(client.record_transaction({"referenceId": "APPT-1"})) is False
