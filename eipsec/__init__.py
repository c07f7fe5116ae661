"""IPsec building blocks: header codecs, logging, replay windows, policy records and simulated devices."""

__version__ = "0.1.0"
__all__ = ["types", "debug", "util", "sa", "headers", "ipsecdev", "dumpdev"]