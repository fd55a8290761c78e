"""SpoofScout: brand-impersonation detection across federated search results."""

__version__ = "0.1.0"
