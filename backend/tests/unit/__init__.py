"""
Unit tests package.

Contains isolated unit tests for payment instruments, the billing services,
ingestion validation and configuration, with record stores mocked where
needed.
"""
