"""AutoFlow: build UI automation workflows and run them simulated or on a browser backend."""

__version__ = "0.1.0"
