"""
Test suite for mintsale

Contains:
- tests/unit/     : Unit tests for individual modules and end-to-end engine scenarios
- tests/conftest.py : Shared fixtures (manual clock, in-memory ledgers, engine)
"""
