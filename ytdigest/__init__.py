"""ytdigest - turn a video's caption track into a structured digest."""

__version__ = "0.1.0"
