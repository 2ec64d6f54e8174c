"""
Permissions package.

Coarse "does the caller hold this permission at all" checks.

Modules of interest:
- drill_up: Scoped grants reduced to RESOURCE:ACTION, the coarse gate and
  the token decoder.
- registry: Static mapping from operations to their required permissions.
"""
