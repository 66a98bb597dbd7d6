"""DocSync Gateway: JSON API, local view-state persistence and live collection broadcast."""

__version__ = "0.1.0"
