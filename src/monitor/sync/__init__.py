"""Remote sync for Pulsewatch.

Modules:
    scheduler — Periodic fire-and-forget upsert of the latest reading
    sinks     — RemoteSink backends (in-memory, Firestore REST, Supabase Postgres)
"""
