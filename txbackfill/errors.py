class FatalJobError(Exception):
    """Raised on any failure that must abort the backfill run (connect, query, write, config)."""
    pass
