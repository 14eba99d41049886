"""HTTP routes for the accounts application."""
