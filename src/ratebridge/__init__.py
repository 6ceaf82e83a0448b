"""ratebridge: multi-provider currency and crypto rate aggregation."""

__version__ = "0.1.0"
