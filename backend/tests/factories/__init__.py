"""Factories for domain values, stored rows and record store mocks."""
