"""StreamScribe: duplex streaming speech recognition client for DashScope Paraformer."""

__version__ = "0.1.0"
