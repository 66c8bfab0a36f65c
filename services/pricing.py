"""
Pricing Resolver
Version: 1.0

Derives the display pricing breakdown from a booking's stored pricing.
"""

from schemas import Booking, PricingBreakdown


def resolve_pricing(booking: Booking) -> PricingBreakdown:
    """
    Build the base / markup / express breakdown for one booking.

    Markup is total minus base, never negative. A stored express surcharge
    is surfaced as-is; without one, express_requested tells the caller the
    surcharge amount is unknown rather than zero.
    """
    pricing = booking.pricing
    markup = max(0.0, round(pricing.total_amount - pricing.base_price, 2))

    return PricingBreakdown(
        base_price=pricing.base_price,
        markup=markup,
        total_amount=pricing.total_amount,
        express_surcharge=pricing.express_surcharge,
        express_requested=booking.booking_config.is_express or pricing.express_surcharge is not None,
        currency=pricing.currency
    )
