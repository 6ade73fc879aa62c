from datetime import datetime, timezone

import pytest

from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    ValidationError,
)
from app.db.models.booking import Booking
from app.db.models.enums import BookingStatus, PaymentMethod, PaymentStatus, TransactionOutcome
from app.db.models.payment import PaymentTransaction
from app.services import bookings as booking_service
from app.services import payments as payment_service
from app.services.payment_gateway import PaymentGateway, SimulatedGateway

from helpers import CARD, BrokenGateway, FixedGateway, SlowGateway, run_concurrently


def _transactions(db, booking_id):
    db.expire_all()
    return (
        db.query(PaymentTransaction)
        .filter(PaymentTransaction.booking_id == booking_id)
        .order_by(PaymentTransaction.id)
        .all()
    )


def _pay(db, world, booking, gateway=None, method="CARD", payload=None):
    return payment_service.process_payment(
        db, world.customer_actor, booking.id, method,
        CARD if payload is None else payload,
        gateway=gateway or FixedGateway(True),
    )


class TestInitiate:
    def test_is_idempotent_and_writes_no_transactions(self, db, make_booking, world):
        booking = make_booking()
        first = payment_service.initiate_payment(db, world.customer_actor, booking.id)
        second = payment_service.initiate_payment(db, world.customer_actor, booking.id)

        assert first["order_id"] == second["order_id"]
        assert first["order_id"].startswith("ORD")
        assert first["amount"] == second["amount"] == 500
        assert first["currency"] == "INR"
        assert first["provider_name"] == "Meena Pipes"
        assert first["category_name"] == "Plumbing"
        assert _transactions(db, booking.id) == []

    def test_process_reuses_the_order(self, db, make_booking, world):
        booking = make_booking()
        order = payment_service.initiate_payment(db, world.customer_actor, booking.id)
        gateway = FixedGateway(True)
        _pay(db, world, booking, gateway)
        assert gateway.calls == [(order["order_id"], 500, PaymentMethod.CARD)]

    def test_rejected_once_paid(self, db, make_booking, world):
        booking = make_booking()
        _pay(db, world, booking)
        with pytest.raises(ConflictError):
            payment_service.initiate_payment(db, world.customer_actor, booking.id)

    def test_only_the_customer(self, db, make_booking, world):
        booking = make_booking()
        with pytest.raises(AuthorizationError):
            payment_service.initiate_payment(db, world.other_customer_actor, booking.id)
        with pytest.raises(AuthorizationError):
            payment_service.initiate_payment(db, world.provider_actor, booking.id)

    def test_cancelled_booking_is_not_payable(self, db, make_booking, world):
        booking = make_booking()
        booking_service.transition(db, booking.id, world.customer_actor, "cancel")
        with pytest.raises(InvalidStateError):
            payment_service.initiate_payment(db, world.customer_actor, booking.id)
        with pytest.raises(InvalidStateError):
            _pay(db, world, booking)


class TestProcess:
    def test_success_marks_paid_without_touching_booking_status(self, db, make_booking, world):
        booking = make_booking()
        result = _pay(db, world, booking)

        assert result["status"] == "SUCCESS"
        assert result["amount"] == 500
        assert result["transaction_id"].startswith("TXN")
        assert result["paid_at"] is not None

        db.expire_all()
        stored = db.get(Booking, booking.id)
        assert stored.payment_status == PaymentStatus.PAID
        assert stored.status == BookingStatus.PENDING
        assert stored.paid_at is not None

        # still PENDING, so a refund is not allowed yet
        with pytest.raises(InvalidStateError):
            payment_service.refund_payment(db, world.customer_actor, booking.id)

    def test_failed_attempt_stays_pending_and_can_retry(self, db, make_booking, world):
        booking = make_booking()
        result = _pay(db, world, booking, FixedGateway(False, reason="Insufficient funds"))

        assert result["status"] == "FAILED"
        assert result["message"] == "Insufficient funds"
        txns = _transactions(db, booking.id)
        assert [t.outcome for t in txns] == [TransactionOutcome.FAILURE]
        assert txns[0].failure_reason == "Insufficient funds"
        assert db.get(Booking, booking.id).payment_status == PaymentStatus.PENDING

        assert _pay(db, world, booking)["status"] == "SUCCESS"
        outcomes = [t.outcome for t in _transactions(db, booking.id)]
        assert outcomes == [TransactionOutcome.FAILURE, TransactionOutcome.SUCCESS]

    def test_gateway_timeout_is_recorded_as_failure(self, db, make_booking, world, monkeypatch):
        monkeypatch.setattr(payment_service, "PAYMENT_TIMEOUT_SECONDS", 0.05)
        booking = make_booking()
        result = _pay(db, world, booking, SlowGateway(delay=0.5))

        assert result["status"] == "FAILED"
        txns = _transactions(db, booking.id)
        assert len(txns) == 1
        assert txns[0].outcome == TransactionOutcome.FAILURE
        assert "did not respond" in txns[0].failure_reason
        assert db.get(Booking, booking.id).payment_status == PaymentStatus.PENDING

    def test_gateway_error_is_recorded_as_failure(self, db, make_booking, world):
        booking = make_booking()
        result = _pay(db, world, booking, BrokenGateway())

        assert result["status"] == "FAILED"
        txns = _transactions(db, booking.id)
        assert [t.outcome for t in txns] == [TransactionOutcome.FAILURE]
        assert "connection reset" in txns[0].failure_reason

    def test_second_payment_is_a_conflict(self, db, make_booking, world):
        booking = make_booking()
        _pay(db, world, booking)
        gateway = FixedGateway(True)
        with pytest.raises(ConflictError):
            _pay(db, world, booking, gateway)

        assert gateway.calls == []
        successes = [t for t in _transactions(db, booking.id) if t.outcome == TransactionOutcome.SUCCESS]
        assert len(successes) == 1

    def test_only_masked_card_data_is_stored(self, db, make_booking, world):
        booking = make_booking()
        _pay(db, world, booking)
        txn = _transactions(db, booking.id)[0]

        assert txn.method == PaymentMethod.CARD
        assert txn.card_last4 == "1111"
        assert txn.card_network == "VISA"
        assert txn.card_holder_name == "Asha Rao"
        stored = {c.name: getattr(txn, c.name) for c in PaymentTransaction.__table__.columns}
        assert "4111111111111111" not in [str(v).replace(" ", "") for v in stored.values()]
        assert "123" not in [str(v) for v in stored.values()]

    @pytest.mark.parametrize(
        "method, payload, stored",
        [
            ("UPI", {"upi_id": "asha@okbank"}, {"upi_id": "asha@okbank"}),
            ("NET_BANKING", {"bank_name": "HDFC Bank"}, {"bank_name": "HDFC Bank"}),
            ("WALLET", {"wallet_id": "paytm"}, {"wallet_id": "PAYTM"}),
        ],
    )
    def test_other_methods(self, db, make_booking, world, method, payload, stored):
        booking = make_booking()
        assert _pay(db, world, booking, method=method, payload=payload)["status"] == "SUCCESS"
        txn = _transactions(db, booking.id)[0]
        for field, value in stored.items():
            assert getattr(txn, field) == value

    def test_invalid_payload_writes_nothing(self, db, make_booking, world):
        booking = make_booking()
        gateway = FixedGateway(True)
        with pytest.raises(ValidationError):
            _pay(db, world, booking, gateway, method="UPI", payload={"upi_id": "not-an-upi"})
        with pytest.raises(ValidationError):
            _pay(db, world, booking, gateway, method="BITCOIN", payload={})
        assert gateway.calls == []
        assert _transactions(db, booking.id) == []

    def test_simulated_gateway_respects_success_rate(self, db, make_booking, world):
        booking = make_booking()
        assert _pay(db, world, booking, SimulatedGateway(success_rate=0.0))["status"] == "FAILED"
        assert _pay(db, world, booking, SimulatedGateway(success_rate=1.0))["status"] == "SUCCESS"


class TestMethodValidation:
    TODAY = datetime(2026, 6, 15, tzinfo=timezone.utc)

    def _card(self, **overrides):
        payload = dict(CARD, **overrides)
        return payment_service.validate_method_payload(PaymentMethod.CARD, payload, today=self.TODAY)

    def test_card_masks_number(self):
        assert self._card() == {"card_last4": "1111", "card_network": "VISA", "card_holder_name": "Asha Rao"}

    @pytest.mark.parametrize(
        "overrides",
        [
            {"card_number": "4111 1111 1111"},
            {"card_number": "4111-1111-1111-111x"},
            {"card_expiry": "13/30"},
            {"card_expiry": "1230"},
            {"card_expiry": "05/26"},
            {"card_cvv": "12"},
            {"card_cvv": "12345"},
            {"card_holder_name": "  "},
            {"card_network": "DINERS"},
        ],
    )
    def test_card_rejections(self, overrides):
        with pytest.raises(ValidationError):
            self._card(**overrides)

    def test_card_expiring_this_month_is_accepted(self):
        assert self._card(card_expiry="06/26")["card_last4"] == "1111"

    @pytest.mark.parametrize(
        "method, payload",
        [
            (PaymentMethod.UPI, {"upi_id": "asha"}),
            (PaymentMethod.UPI, {}),
            (PaymentMethod.NET_BANKING, {"bank_name": "Bank of Atlantis"}),
            (PaymentMethod.WALLET, {"wallet_id": "VENMO"}),
        ],
    )
    def test_other_rejections(self, method, payload):
        with pytest.raises(ValidationError):
            payment_service.validate_method_payload(method, payload, today=self.TODAY)


class TestRefund:
    def test_refund_after_provider_rejects(self, db, make_booking, world):
        booking = make_booking()
        _pay(db, world, booking)
        booking_service.transition(db, booking.id, world.provider_actor, "reject")

        refunded = payment_service.refund_payment(db, world.customer_actor, booking.id)

        assert refunded.payment_status == PaymentStatus.REFUNDED
        assert refunded.status == BookingStatus.REJECTED
        assert refunded.refunded_at is not None
        status = payment_service.get_payment_status(db, world.customer_actor, booking.id)
        assert status["status"] == "REFUNDED"

    def test_refund_is_one_shot(self, db, make_booking, world):
        booking = make_booking()
        _pay(db, world, booking)
        booking_service.transition(db, booking.id, world.provider_actor, "reject")
        payment_service.refund_payment(db, world.admin_actor, booking.id)
        with pytest.raises(InvalidStateError):
            payment_service.refund_payment(db, world.customer_actor, booking.id)

    def test_unpaid_booking_cannot_be_refunded(self, db, make_booking, world):
        booking = make_booking()
        booking_service.transition(db, booking.id, world.customer_actor, "cancel")
        with pytest.raises(InvalidStateError):
            payment_service.refund_payment(db, world.customer_actor, booking.id)

    def test_completed_booking_cannot_be_refunded(self, db, make_booking, world):
        booking = make_booking()
        _pay(db, world, booking)
        for action in ("accept", "start", "complete"):
            booking_service.transition(db, booking.id, world.provider_actor, action)
        with pytest.raises(InvalidStateError):
            payment_service.refund_payment(db, world.customer_actor, booking.id)

    def test_refund_authority(self, db, make_booking, world):
        booking = make_booking()
        _pay(db, world, booking)
        booking_service.transition(db, booking.id, world.provider_actor, "reject")
        with pytest.raises(AuthorizationError):
            payment_service.refund_payment(db, world.provider_actor, booking.id)
        with pytest.raises(AuthorizationError):
            payment_service.refund_payment(db, world.other_customer_actor, booking.id)


class TestPaymentStatus:
    def test_reports_latest_attempt(self, db, make_booking, world):
        booking = make_booking()
        assert payment_service.get_payment_status(db, world.customer_actor, booking.id)["status"] == "NOT_PAID"

        _pay(db, world, booking, FixedGateway(False))
        assert payment_service.get_payment_status(db, world.customer_actor, booking.id)["status"] == "FAILED"

        _pay(db, world, booking)
        status = payment_service.get_payment_status(db, world.admin_actor, booking.id)
        assert status["status"] == "SUCCESS"
        assert status["method"] == PaymentMethod.CARD

        with pytest.raises(AuthorizationError):
            payment_service.get_payment_status(db, world.other_customer_actor, booking.id)


class TestConcurrentPayments:
    def test_two_payments_racing_on_one_booking_charge_once(self, session_factory, make_booking, world, db):
        booking = make_booking()
        gateway = FixedGateway(True)

        def pay(session):
            return payment_service.process_payment(
                session, world.customer_actor, booking.id, "CARD", CARD, gateway=gateway
            )

        results = run_concurrently(session_factory, [pay, pay])

        paid = [r for r in results if isinstance(r, dict)]
        refused = [r for r in results if isinstance(r, ConflictError)]
        assert len(paid) == 1 and paid[0]["status"] == "SUCCESS"
        assert len(refused) == 1
        assert len(gateway.calls) == 1

        successes = [t for t in _transactions(db, booking.id) if t.outcome == TransactionOutcome.SUCCESS]
        assert len(successes) == 1
        assert db.get(Booking, booking.id).payment_status == PaymentStatus.PAID


def test_gateway_base_cannot_be_used_directly():
    with pytest.raises(TypeError):
        PaymentGateway()

    class NoCharge(PaymentGateway):
        pass

    with pytest.raises(TypeError):
        NoCharge()
