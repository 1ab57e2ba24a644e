"""
Payment fee arithmetic

Pure functions over Decimal. Every result is rounded half-up to cents, so
platform_fee + processing_fee + net == amount to the cent.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

CENTS = Decimal("0.01")

# Fixed platform commission, the same for every consultation and lawyer
PLATFORM_FEE_RATE = Decimal("0.10")

Number = Union[Decimal, int, float, str]


@dataclass(frozen=True)
class PaymentMethod:
    id: str
    name: str
    percentage: Decimal
    fixed: Decimal
    enabled: bool


PAYMENT_METHODS: dict[str, PaymentMethod] = {
    "card": PaymentMethod("card", "Tarjeta de crédito/débito", Decimal("0.029"), Decimal("3"), True),
    "bank_transfer": PaymentMethod("bank_transfer", "Transferencia bancaria", Decimal("0.015"), Decimal("5"), True),
    "paypal": PaymentMethod("paypal", "PayPal", Decimal("0.034"), Decimal("2"), False),
    "oxxo": PaymentMethod("oxxo", "OXXO", Decimal("0.025"), Decimal("8"), False),
}


def to_money(value: Number) -> Decimal:
    """Coerce to Decimal and round half-up to cents"""
    if not isinstance(value, Decimal):
        # str() first so floats like 0.1 do not carry binary noise
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def get_payment_method(method_id: str) -> Optional[PaymentMethod]:
    return PAYMENT_METHODS.get(method_id)


def is_method_enabled(method_id: str) -> bool:
    method = get_payment_method(method_id)
    return method is not None and method.enabled


def enabled_methods() -> list[PaymentMethod]:
    return [method for method in PAYMENT_METHODS.values() if method.enabled]


def calculate_platform_fee(amount: Number) -> Decimal:
    return to_money(Decimal(str(amount)) * PLATFORM_FEE_RATE)


def calculate_processing_fee(amount: Number, method_id: str) -> Decimal:
    """Gateway fee for the method; an unknown method costs nothing"""
    method = get_payment_method(method_id)
    if method is None:
        return to_money(0)
    return to_money(Decimal(str(amount)) * method.percentage + method.fixed)


def calculate_net_amount(amount: Number, method_id: str) -> Decimal:
    """What the lawyer receives after both fees"""
    return to_money(amount) - calculate_platform_fee(amount) - calculate_processing_fee(amount, method_id)


def split_amount(amount: Number, method_id: str) -> dict[str, Decimal]:
    """Full breakdown stored on a payment row"""
    return {
        "amount": to_money(amount),
        "platform_fee": calculate_platform_fee(amount),
        "processing_fee": calculate_processing_fee(amount, method_id),
        "lawyer_earnings": calculate_net_amount(amount, method_id),
    }
