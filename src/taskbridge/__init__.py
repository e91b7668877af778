"""TaskBridge - pull tasks from an external provider into a local task store."""

__version__ = "0.1.0"
