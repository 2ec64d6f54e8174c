"""
Caller context package.

Modules of interest:
- models: Token claims, caller profile and the immutable per-operation
  caller context with its stage machine.
- profiles: Profile lookup collaborator and an in-memory implementation.
- pipeline: Stage-by-stage enhancement of the caller context, including
  the god mode bypass.
"""
