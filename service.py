"""
Process entry point for container deployments (Cloud Run, ECS).
"""
import sys

# Configure logging first
from fleetscaler.common.logger import setup_logging

setup_logging()

from fleetscaler.main import run


if __name__ == "__main__":
    sys.exit(run())
