"""Backend-for-frontend API for the TixPort ticket storefront."""

__version__ = "1.0.0"
