"""task_dispatch — Event-driven ECS task dispatcher, shipped as a Lambda layer.

Provides:
    - Placement context loaded from the Lambda environment
    - EventBridge envelope decoding
    - ECS RunTask request assembly
    - Single-attempt dispatch client with classified outcomes
    - Dispatcher that reports exactly one outcome record per event
    - Task-side environment contract and dispatcher IAM policy rendering
"""

__version__ = "1.0.0"
