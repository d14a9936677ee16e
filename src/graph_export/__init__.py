"""Export bounded neighbourhoods of a property graph as JSON documents."""

__version__ = "4.1.0"
