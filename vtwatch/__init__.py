"""vtwatch: VirusTotal scanning with caching, rate limiting and background rescans."""

__version__ = "0.1.0"
