"""Microsoft 365 credential broker: device-code sign-in, token cache and silent renewal."""

__version__ = "0.1.0"
