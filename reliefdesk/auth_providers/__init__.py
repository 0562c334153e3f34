"""Pluggable principal providers (gateway headers, JWT)."""
