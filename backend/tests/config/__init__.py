"""
Test configuration package.

Holds the marker registration shared by the whole suite.
"""
