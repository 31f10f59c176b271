"""
Code Explorer API Package

Modules:
- routers: FastAPI routers for the repository explorer
- services: rate limiter, audit log, and repository client
"""
