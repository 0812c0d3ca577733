"""WordPress site provisioning backend for cPanel shared hosting."""

__version__ = "1.0.0"
