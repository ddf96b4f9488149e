"""chloe — an AI data assistant that calls tools to match columns."""

__version__ = "0.1.0"
