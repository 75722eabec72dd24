"""End-to-end browser verification harness for the Golobe travel app."""

__version__ = "1.0.0"
