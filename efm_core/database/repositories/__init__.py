"""Repository classes, one per aggregate of the catalog."""
