"""Domain services: membership, bug lifecycle and GitHub commit verification."""
