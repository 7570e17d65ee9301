"""Find TLS records in Ethernet frames on the HTTPS ports and decrypt them with known session keys."""

__version__ = "0.1.0"
__all__ = ["__version__"]