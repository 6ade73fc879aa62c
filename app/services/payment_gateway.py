# app/services/payment_gateway.py
"""
Payment gateway seam.

The processor only needs "did the charge go through, and under which
reference". Real integrations subclass PaymentGateway; SimulatedGateway is
the default and approves a configurable share of attempts.
"""
import logging
import random
import time
import uuid
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass
from typing import Optional

from app.core.config import (
    PAYMENT_SIMULATED_LATENCY_SECONDS,
    PAYMENT_SUCCESS_RATE,
    PAYMENT_TIMEOUT_SECONDS,
)
from app.core.exceptions import ExternalFailure
from app.db.models.enums import PaymentMethod

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="payment-gateway")


def new_transaction_ref() -> str:
    return "TXN" + uuid.uuid4().hex[:12].upper()


@dataclass
class GatewayResult:
    success: bool
    reference: str
    reason: Optional[str] = None


class PaymentGateway(ABC):
    """One charge attempt against an external payment network."""

    name = "base"

    @abstractmethod
    def charge(self, order_ref: str, amount: int, method: PaymentMethod) -> GatewayResult:
        """Return the outcome; raise on transport errors."""


class SimulatedGateway(PaymentGateway):
    name = "simulated"

    def __init__(
        self,
        success_rate: float = PAYMENT_SUCCESS_RATE,
        latency_seconds: float = PAYMENT_SIMULATED_LATENCY_SECONDS,
        rng: Optional[random.Random] = None,
    ):
        self.success_rate = success_rate
        self.latency_seconds = latency_seconds
        self._rng = rng or random.Random()

    def charge(self, order_ref: str, amount: int, method: PaymentMethod) -> GatewayResult:
        if self.latency_seconds:
            time.sleep(self.latency_seconds)
        reference = new_transaction_ref()
        if self._rng.random() < self.success_rate:
            return GatewayResult(success=True, reference=reference)
        return GatewayResult(success=False, reference=reference, reason="Payment declined by bank")


_gateway: PaymentGateway = SimulatedGateway()


def get_gateway() -> PaymentGateway:
    return _gateway


def charge_with_timeout(
    gateway: PaymentGateway,
    order_ref: str,
    amount: int,
    method: PaymentMethod,
    timeout: float = PAYMENT_TIMEOUT_SECONDS,
) -> GatewayResult:
    """Run one charge attempt; never waits longer than `timeout` and never retries."""
    future = _executor.submit(gateway.charge, order_ref, amount, method)
    try:
        return future.result(timeout=timeout)
    except FuturesTimeout:
        future.cancel()
        logger.warning("Gateway %s timed out after %ss for order %s", gateway.name, timeout, order_ref)
        raise ExternalFailure(f"Payment gateway did not respond within {timeout:g}s")
    except ExternalFailure:
        raise
    except Exception as exc:
        logger.exception("Gateway %s failed for order %s", gateway.name, order_ref)
        raise ExternalFailure(f"Payment gateway error: {exc}") from exc
