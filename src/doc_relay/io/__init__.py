"""I/O layer: sink connectors and the bulk loader."""
