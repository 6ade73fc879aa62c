# app/core/config.py
import os
import warnings
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _csv(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./servicehub.db")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Session tokens are issued by the auth service; we only validate them
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    warnings.warn(
        "JWT_SECRET not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    JWT_SECRET = "INSECURE-DEV-SECRET-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM") or "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# Payments
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "INR")
PAYMENT_TIMEOUT_SECONDS = float(os.getenv("PAYMENT_TIMEOUT_SECONDS", "10"))
PAYMENT_SUCCESS_RATE = float(os.getenv("PAYMENT_SUCCESS_RATE", "0.9"))
PAYMENT_SIMULATED_LATENCY_SECONDS = float(os.getenv("PAYMENT_SIMULATED_LATENCY_SECONDS", "0"))

NET_BANKING_BANKS = _csv(
    "NET_BANKING_BANKS",
    "SBI,HDFC Bank,ICICI Bank,Axis Bank,Kotak Bank,Yes Bank,PNB,Bank of Baroda,Canara Bank,IDFC First Bank",
)
WALLET_PROVIDERS = _csv("WALLET_PROVIDERS", "PAYTM,PHONEPE,AMAZONPAY,MOBIKWIK")
CARD_NETWORKS = ["VISA", "MASTERCARD", "RUPAY", "AMEX"]
