"""Tools that package source trees as kzip archives for indexing."""
