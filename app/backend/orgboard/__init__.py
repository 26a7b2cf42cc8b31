"""Organization dashboard editing backend."""
