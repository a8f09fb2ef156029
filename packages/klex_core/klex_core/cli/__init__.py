"""klex_core.cli -- the ``klex`` command line."""
