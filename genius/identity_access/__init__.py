"""Identity & access context: admin sign-in via Keycloak and server-side sessions."""
