"""cmreceiver: polls named Kubernetes ConfigMaps and emits them downstream."""

__version__ = "0.3.0"
