"""Keep wiki template pages in sync with the VPM package registry."""

__version__ = "0.3.0"

USER_AGENT = f"VPMM-WikiSync/{__version__} hackebein@gmail.com"
