"""Order engine — fixed-point order construction, typed-data signing and
market metadata caching for a delegated-signer custody account."""

__version__ = "0.1.0"
