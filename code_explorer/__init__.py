"""
Code Explorer Gateway

FastAPI service that guards a read-only repository viewer behind a single
shared password, per-client rate limiting, and an append-only audit log.

Packages:
- api: FastAPI routers and services (rate limiter, audit log, repository client)
- auth: Session cookie codec, login/session-check/logout endpoints
- core: Settings, clock, and exception taxonomy
- schemas: Pydantic schemas for request/response validation
- cli: Command-line interface tools

Usage:
    # Run the API server
    uvicorn code_explorer.main:app --reload --port 8000

    # Show the latest audit entries
    python -m code_explorer.cli.commands audit --limit 20

Environment Variables:
    SESSION_SECRET: Secret used to sign the session cookie
    CODE_EXPLORER_PASSWORD: Shared access password
    AUDIT_LOG_PATH: Durable audit log location (default: data/audit-logs.json)
    LOG_LEVEL: Logging level (default: INFO)
"""

__version__ = "0.1.0"
