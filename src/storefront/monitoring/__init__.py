"""Request metrics, health reporting and security headers."""
