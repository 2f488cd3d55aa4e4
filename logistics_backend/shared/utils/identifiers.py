# logistics_backend/shared/utils/identifiers.py
import secrets
import time
from typing import Optional

BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError("base36 encoding requires a non-negative integer")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def random_base36(length: int) -> str:
    return "".join(secrets.choice(BASE36_ALPHABET) for _ in range(length))


def generate_identifier(prefix: str, random_length: int, timestamp_ms: Optional[int] = None) -> str:
    """prefix + base36(epoch millis) + random base36 suffix, upper-cased"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{prefix}{to_base36(timestamp_ms)}{random_base36(random_length)}".upper()


def generate_shipment_id() -> str:
    return generate_identifier("SH", 5)


def generate_tracking_number() -> str:
    return generate_identifier("TRK", 8)


def generate_payment_id() -> str:
    return generate_identifier("PAY", 6)


def generate_refund_id() -> str:
    return generate_identifier("REF", 4)


def generate_partial_payment_id() -> str:
    return generate_identifier("PAR", 4)
