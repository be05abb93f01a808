"""Client for the TMDb movie metadata API: session handshake, search, favorites and watchlist."""

__version__ = "0.1.0"
