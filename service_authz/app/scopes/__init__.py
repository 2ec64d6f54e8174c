"""
Scopes package.

Defines the authorization vocabulary (constraints, resources, actions,
policies and their canonical ordering) and the parser that folds a
caller's scoped permission grants into a per-resource, per-action ceiling.

Modules of interest:
- models: Enumerations, the constraint order and the scoped permission
  wire form.
- parser: Ceiling construction from raw grant strings.
"""
