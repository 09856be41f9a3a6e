"""Document custody, verification and credential issuance."""

__version__ = "0.1.0"
