"""Caller attribution — reads the gateway-verified bearer token."""
