"""Request context management for observability.

Context variables carry request-scoped identifiers across async boundaries
so every log line emitted while serving a request can be correlated.
"""

from contextvars import ContextVar

# Request ID - unique per HTTP request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Authenticated user for the current request
user_id_var: ContextVar[str] = ContextVar("user_id", default="")

# Resolved club (tenant) for the current request
tenant_id_var: ContextVar[str] = ContextVar("tenant_id", default="")
