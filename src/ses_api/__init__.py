"""SES Platform API: environment lifecycle and fleet provisioning service."""

__version__ = "0.1.0"
