"""Football App authentication service: token issuance, revocation and request gating."""

__version__ = "1.0.0"
