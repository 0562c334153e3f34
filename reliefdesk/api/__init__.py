"""HTTP surface of the reliefdesk authorization service."""
