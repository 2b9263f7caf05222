"""Decision audit trail: storage, querying, viewing and export."""
