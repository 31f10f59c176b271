"""
Code Explorer API Tests

End-to-end tests for the auth, browse, view, search and health endpoints,
plus the settings they are configured from. Time is driven by a ManualClock
and the repository is an in-memory fake, so no network access is needed.
"""
