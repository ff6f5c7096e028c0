"""
Queue-driven fleet autoscaler.

This package polls the depth of a work queue and reconciles the instance
count of a worker fleet (Cloud Run or ECS) against it, one serialized
cycle at a time.
"""

__version__ = "0.3.0"
