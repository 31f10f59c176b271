"""
Code Explorer API Routers

This package contains FastAPI routers that define the API endpoints.

Routers:
- health_router: Health check endpoint
- explorer_router: Browse, view, and search endpoints (session + rate limit gated)
"""
