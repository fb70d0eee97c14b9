"""ScaffoldPlane - local model client and safe, reviewable file scaffolding."""

__version__ = "0.1.0"
