"""Pure domain helpers and security primitives."""
