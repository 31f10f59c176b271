"""
Code Explorer API Services

Stateful building blocks shared by the routers. Each is constructed once by
create_app() and kept on ``app.state``:

- rate_limiter: sliding-window admission control with temporary blocks
- audit_log: buffered, append-only audit trail with a JSON file store
- repository_service: read-only repository client (GitHub)
"""
