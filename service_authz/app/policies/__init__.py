"""
Policies package.

Turns a caller's ceiling into ALLOW/DENY decisions.

Modules of interest:
- engine: Policy matrix evaluation against a required constraint.
- relationship: Required constraint of a resource instance, from its
  ownership relative to the caller.
- query_scope: Data-access filters derived from the ceiling.
"""
