# services/funding.py
"""Wallet funding gate applied before an online-payment purchase."""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from config.settings import settings
from core.errors import ValidationFailed
from models.domain import PaymentMethod, Subscription
from services.pricing import CostQuote


@dataclass(frozen=True)
class FundingDecision:
    proceed: bool
    requires_debit: bool
    fee: Decimal
    balance: Decimal

    @property
    def shortfall(self) -> Decimal:
        if self.proceed:
            return Decimal("0")
        return self.fee - self.balance


def check_funding(method: PaymentMethod, fee: Decimal, balance: Decimal) -> FundingDecision:
    method = PaymentMethod(method)
    if method == PaymentMethod.CASH:
        # paid to the driver; wallet untouched
        return FundingDecision(proceed=True, requires_debit=False, fee=fee, balance=balance)
    return FundingDecision(proceed=balance >= fee, requires_debit=True, fee=fee, balance=balance)


def validate_top_up(amount) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationFailed("Please enter a valid amount")
    if not value.is_finite() or value <= 0:
        raise ValidationFailed("Amount must be greater than 0")
    if value > settings.WALLET_TOPUP_MAX:
        raise ValidationFailed(f"Amount must not exceed {settings.WALLET_TOPUP_MAX}")
    return value


@dataclass(frozen=True)
class PurchaseOutcome:
    """Either a created subscription or the insufficient-balance branch."""
    quote: CostQuote
    subscription: Optional[Subscription] = None
    funding: Optional[FundingDecision] = None

    @property
    def insufficient_balance(self) -> bool:
        return self.subscription is None and self.funding is not None and not self.funding.proceed
