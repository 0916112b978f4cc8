"""Blog post API with keyset cursor pagination."""
