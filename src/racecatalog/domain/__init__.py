"""Domain layer of racecatalog."""
