"""
Authz Service package for the authorization layer.

This package decides whether a caller may perform each CRUD action on each
resource kind, given the scoped permissions of a verified token and the
relationship between the caller and the target instance. It provides:

- app.main: API surface for ceilings, policy matrices and pipeline runs.
- app.scopes: Vocabulary and the scoped-permission parser.
- app.policies: Policy engine, relationship resolver and query scoping.
- app.permissions: Drill-up, coarse permission gate and operation registry.
- app.context: Per-operation caller context and its enhancement pipeline.

Guidelines:
- Engine functions are pure; only profile lookups await.
- Absent grants are denials, never errors.
- Malformed grants fail the request closed.
"""
