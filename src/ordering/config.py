"""Checkout settings — tax, delivery fee, preparation time and accepted methods.

Settings are an explicit object handed to ``Order.create`` and the checkout
coordinator. Values come from the ``custom`` section of the Protean domain
configuration (``[tool.protean.custom]`` in ``pyproject.toml``) and fall back
to the defaults below.
"""

from dataclasses import dataclass

from protean.utils.globals import current_domain

DEFAULT_ACCEPTED_METHODS = ("Cash", "Credit", "Check")


@dataclass(frozen=True)
class CheckoutSettings:
    tax_rate: float = 0.20
    delivery_fee: float = 2.99
    preparation_minutes: int = 45
    currency: str = "GBP"
    accepted_methods: tuple[str, ...] = DEFAULT_ACCEPTED_METHODS

    def __post_init__(self) -> None:
        if not 0.0 <= self.tax_rate <= 1.0:
            raise ValueError(f"tax_rate must be between 0 and 1, got {self.tax_rate}")
        if self.delivery_fee < 0:
            raise ValueError(f"delivery_fee cannot be negative, got {self.delivery_fee}")
        if self.preparation_minutes <= 0:
            raise ValueError(f"preparation_minutes must be positive, got {self.preparation_minutes}")
        if not self.accepted_methods:
            raise ValueError("accepted_methods cannot be empty")

    def accepts(self, method: str) -> bool:
        return method.lower() in {m.lower() for m in self.accepted_methods}

    @classmethod
    def from_mapping(cls, values: dict) -> "CheckoutSettings":
        """Build settings from upper-case config keys, ignoring unknown ones."""
        defaults = cls()
        methods = values.get("ACCEPTED_PAYMENT_METHODS", defaults.accepted_methods)
        return cls(
            tax_rate=float(values.get("TAX_RATE", defaults.tax_rate)),
            delivery_fee=float(values.get("DELIVERY_FEE", defaults.delivery_fee)),
            preparation_minutes=int(values.get("PREPARATION_MINUTES", defaults.preparation_minutes)),
            currency=str(values.get("CURRENCY", defaults.currency)),
            accepted_methods=tuple(methods),
        )

    @classmethod
    def from_domain(cls, domain) -> "CheckoutSettings":
        custom = domain.config.get("custom", {}) or {}
        return cls.from_mapping(custom)


def checkout_settings() -> CheckoutSettings:
    """Settings of the active domain context."""
    return CheckoutSettings.from_domain(current_domain)
