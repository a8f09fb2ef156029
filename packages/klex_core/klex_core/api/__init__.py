"""klex_core.api -- error taxonomy shared by all modules."""
