"""``bizframe`` command line."""
