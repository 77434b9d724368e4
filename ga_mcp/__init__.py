"""
GA4 Reporting Tool Server Package.

FastAPI service exposing Google Analytics 4 reports as named tools, callable
with a flat request shape or JSON-RPC 2.0.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, backend client, errors and dependencies
    - models: Pydantic schemas and enums
    - services: Report tools, derived analytics and the invocation gateway
"""

__version__ = "2.1.0"
