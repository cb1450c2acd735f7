"""HTTP server for the user store."""
