"""awsbreeze - AWS What's New in your terminal."""

__version__ = "0.3.0"
