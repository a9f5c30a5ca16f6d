"""
entmodel test suite.

This package contains:
- unit/: Unit tests (no external services; schema files go to tmp_path)
"""
