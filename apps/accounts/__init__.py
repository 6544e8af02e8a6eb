"""Accounts: identity, role assignments and client-side permission resolution."""
