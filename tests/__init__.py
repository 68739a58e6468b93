# chainlab Test Suite
"""
Test suite including:
- Unit tests (hashing, proof of work, ledger)
- Security tests (tampering and forged blocks)
- Integration tests (events, console)

Run with: pytest
Coverage: coverage run -m pytest && coverage report
"""
