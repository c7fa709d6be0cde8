"""HTTP transport for the OpenCode session API."""
