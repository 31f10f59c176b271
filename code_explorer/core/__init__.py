"""
Code Explorer Core Package

Configuration, time source, and the exception taxonomy shared by every
other package.

Modules:
- settings: pydantic-settings configuration (module-level ``settings``)
- clock: SystemClock / ManualClock in epoch milliseconds
- exceptions: GatewayError hierarchy rendered by the app's exception handlers

Environment Variables:
    SESSION_SECRET: Cookie signing secret
    CODE_EXPLORER_PASSWORD: Shared access password
    APP_ENV: development | production | test
"""
