"""Directory providers that capture a remote organisation as a snapshot."""
