"""Storage ports, configuration and adapters (in-memory, Supabase)."""
