"""Web adapter: FastAPI application exposing the gate, the admin API and the public catalog."""
