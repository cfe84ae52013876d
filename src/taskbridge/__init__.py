"""TaskBridge: durable task-token callbacks for long-running external jobs."""

__version__ = "0.1.0"
