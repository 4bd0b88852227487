"""Local services used by the application flows."""
