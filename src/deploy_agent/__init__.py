"""Token issuance and verification for webhook-driven deployment projects."""

__version__ = "0.8.0"
