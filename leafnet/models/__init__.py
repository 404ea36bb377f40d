"""API schemas for Leaf Network."""
