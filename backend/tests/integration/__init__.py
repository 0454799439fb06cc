"""
Integration tests package.

Contains integration tests that run the record store against an in-memory
SQLite database and drive the HTTP API through the Flask test client.
"""
