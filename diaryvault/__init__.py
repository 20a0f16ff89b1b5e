"""diaryvault: a password-protected, locally stored encrypted diary."""

__version__ = "0.1.0"
