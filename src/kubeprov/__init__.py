"""kubeprov — cluster infrastructure provisioning and machine teardown."""

__version__ = "0.1.0"
