"""
Shared infrastructure for the synchronization engine

Provides:
- logging: structured logging setup
- metrics: Prometheus collectors and exporter
- tracing: OpenTelemetry spans
- database: PostgreSQL connection helper
- retry: backoff for transient database errors
- sql_safety: identifier quoting
- vault_client: connection target from HashiCorp Vault
"""

__version__ = "1.0.0"
__all__ = ["logging", "metrics", "tracing", "database", "retry", "sql_safety", "vault_client"]
