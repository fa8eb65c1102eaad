"""dyst — install executables published as GitHub release assets."""

__version__ = "0.1.0"
