"""Personal book list: catalog search, result ranking and a local library."""
