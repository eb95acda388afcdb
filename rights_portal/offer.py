"""
Rights offer terms and entitlement arithmetic.

A rights issue offers existing shareholders ``new_shares`` new shares
for every ``per_held`` shares they hold at the qualification date, at a
fixed price per share.  The helpers in this module compute the
provisional allotment for a holding and the consideration payable for
a number of units.  The active offer is read from the environment so
that the same code can serve different issues.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RightsOffer:
    """Terms of a single rights issue."""

    company: str = "Linkage Assurance Plc"
    new_shares: int = 2
    per_held: int = 3
    price: float = 1.32
    nominal: str = "50 kobo"
    shares_offered: int = 12_320_000_000
    qualification_date: str = "22 January, 2026"

    @property
    def ratio_label(self) -> str:
        return f"{self.new_shares} new for every {self.per_held}"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "company": self.company,
            "new_shares": self.new_shares,
            "per_held": self.per_held,
            "price": self.price,
            "nominal": self.nominal,
            "shares_offered": self.shares_offered,
            "qualification_date": self.qualification_date,
            "declaration": declaration(self),
        }


def _parse_ratio(value: str) -> tuple[int, int]:
    """Parse a ratio such as ``"2:3"`` into ``(2, 3)``."""
    try:
        new, held = (int(part.strip()) for part in value.split(":", 1))
    except ValueError as e:
        raise ValueError(f"Invalid rights ratio {value!r}; expected NEW:HELD") from e
    if new <= 0 or held <= 0:
        raise ValueError(f"Invalid rights ratio {value!r}; both parts must be positive")
    return new, held


def load_offer() -> RightsOffer:
    """Build the active offer, applying ``RIGHTS_RATIO`` and ``RIGHTS_PRICE`` overrides."""
    offer = RightsOffer()
    overrides: Dict[str, Any] = {}
    ratio = os.getenv("RIGHTS_RATIO")
    if ratio:
        overrides["new_shares"], overrides["per_held"] = _parse_ratio(ratio)
    price = os.getenv("RIGHTS_PRICE")
    if price:
        try:
            overrides["price"] = float(price)
        except ValueError as e:
            raise ValueError(f"Invalid RIGHTS_PRICE {price!r}") from e
    if overrides:
        logger.info(f"Applying rights offer overrides: {overrides}")
        offer = replace(offer, **overrides)
    return offer


def compute_entitlement(holdings: int, offer: RightsOffer) -> Dict[str, Any]:
    """Return the provisional allotment for ``holdings`` under ``offer``.

    Fractions of a share are not allotted, so the rights figure is
    rounded down.  The amount due is the full consideration for the
    provisional allotment.
    """
    holdings = int(holdings)
    if holdings < 0:
        raise ValueError("Holdings cannot be negative")
    rights_issue = holdings * offer.new_shares // offer.per_held
    return {
        "rights_issue": rights_issue,
        "holdings_after": holdings + rights_issue,
        "amount_due": price_for(rights_issue, offer),
    }


def price_for(units: float, offer: RightsOffer) -> float:
    """Consideration payable for ``units`` shares."""
    return round(float(units) * offer.price, 2)


def declaration(offer: RightsOffer) -> str:
    """The official declaration sentence for the offer."""
    return (
        f"Rights Issue of {offer.shares_offered:,} Ordinary Shares of {offer.nominal} each "
        f"at N{offer.price:,.2f} per share on the basis of {offer.new_shares} new for every "
        f"{offer.per_held} Ordinary Shares held as at the close of business on "
        f"{offer.qualification_date}."
    )
