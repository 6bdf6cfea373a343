"""Pure quiz logic (no I/O)."""
