"""External service integrations: ``cloud`` (az, gh, OIDC) and ``deployment``."""
