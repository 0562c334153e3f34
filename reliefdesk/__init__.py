"""reliefdesk: role-based authorization core for humanitarian reporting."""

__version__ = "0.1.0"
