"""Core building blocks shared by discovery, process and resolver packages."""
