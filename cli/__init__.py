"""CLI package for the disk-free checker."""
