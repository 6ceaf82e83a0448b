"""Rate lookups, conversions, and the market pulse overview."""

from ratebridge.rates.composer import ConversionComposer, infer_kind
from ratebridge.rates.fallback import first_success
from ratebridge.rates.pulse import MarketPulseService
from ratebridge.rates.service import RateService
from ratebridge.rates.synthetic import SyntheticEstimator
from ratebridge.rates.validation import validate_amount, validate_code, validate_days

__all__ = [
    "ConversionComposer",
    "MarketPulseService",
    "RateService",
    "SyntheticEstimator",
    "first_success",
    "infer_kind",
    "validate_amount",
    "validate_code",
    "validate_days",
]
