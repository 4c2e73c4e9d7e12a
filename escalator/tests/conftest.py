"""Shared test configuration."""

import os
import sys
from pathlib import Path

# Ensure the project root is in the path so imports work
project_root = Path(__file__).parent.parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

# Keep tests off the real database, log file and broker
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ["LOG_FILE"] = ""
os.environ["REDIS_URL"] = ""
os.environ["CELERY_BROKER_URL"] = ""
