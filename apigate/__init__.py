"""Building blocks for an API gateway: discovery, balancing and HTTP transport."""

__version__ = "2.0.0"