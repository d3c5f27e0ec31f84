"""kglens - layout and viewport engine for captured knowledge graphs."""

__version__ = "0.1.0"
