"""klex_core.core -- shared enums."""
