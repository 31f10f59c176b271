"""
Code Explorer Tests

Test Organization:
- test_*.py: Tests for the service layer (rate limiter, audit log, sessions,
  authentication, repository client)
- api/: Tests for the FastAPI endpoints, driven through TestClient

Running Tests:
    # Run all tests
    pytest tests/

    # Run only API tests
    pytest tests/api/

    # Run with coverage
    pytest --cov=code_explorer tests/
"""
