"""Per-request state and path scoping for the resolver chain."""
