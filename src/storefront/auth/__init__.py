"""Registration, login and bearer-token authentication."""
