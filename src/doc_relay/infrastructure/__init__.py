"""Infrastructure layer: schema catalog, SQL generation and document transforms."""
