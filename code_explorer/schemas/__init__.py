"""
Code Explorer Schemas Package

Pydantic schemas for request/response validation and durable records.

Modules:
- audit_schema: Audit log entries
- explorer_schema: Browse, view, and search payloads
"""
