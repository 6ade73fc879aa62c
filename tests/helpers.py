import threading
import time
from datetime import datetime, timedelta, timezone

from app.core.security import Actor, create_access_token
from app.services.payment_gateway import GatewayResult, PaymentGateway, new_transaction_ref

CARD = {
    "card_number": "4111 1111 1111 1111",
    "card_expiry": "12/99",
    "card_cvv": "123",
    "card_holder_name": "Asha Rao",
    "card_network": "VISA",
}


class FixedGateway(PaymentGateway):
    name = "fixed"

    def __init__(self, success=True, reason="Payment declined by bank"):
        self.success = success
        self.reason = reason
        self.calls = []

    def charge(self, order_ref, amount, method):
        self.calls.append((order_ref, amount, method))
        return GatewayResult(
            success=self.success,
            reference=new_transaction_ref(),
            reason=None if self.success else self.reason,
        )


class SlowGateway(PaymentGateway):
    name = "slow"

    def __init__(self, delay=1.0):
        self.delay = delay

    def charge(self, order_ref, amount, method):
        time.sleep(self.delay)
        return GatewayResult(success=True, reference=new_transaction_ref())


class BrokenGateway(PaymentGateway):
    name = "broken"

    def charge(self, order_ref, amount, method):
        raise ConnectionError("connection reset by peer")


def future(hours=48):
    return datetime.now(timezone.utc) + timedelta(hours=hours)


def auth_headers(actor: Actor) -> dict:
    return {"Authorization": f"Bearer {create_access_token(actor.user_id, actor.role)}"}


def run_concurrently(session_factory, calls, timeout=10):
    """
    Run each call(session) on its own thread with its own session, all
    released at once. Returns results in call order; raised errors are
    returned in place of results.
    """
    barrier = threading.Barrier(len(calls))
    results = [None] * len(calls)

    def run(i, call):
        session = session_factory()
        try:
            barrier.wait()
            results[i] = call(session)
        except Exception as exc:  # collected for assertions
            results[i] = exc
        finally:
            session.close()

    threads = [threading.Thread(target=run, args=(i, call)) for i, call in enumerate(calls)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=timeout)
    return results
