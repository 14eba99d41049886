"""Service integrations for the accounts application."""
