"""Medical appointment scheduling backend."""
