"""Package tracking domain."""
