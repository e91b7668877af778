"""Service layer: token lifecycle, remote fetch, reconciliation."""
