"""
Paths configuration

Centralized directory paths for the application.
"""

import os
from pathlib import Path

# Base directories
PACKAGE_DIR = Path(__file__).parent.parent
BASE_DIR = Path(os.getenv("VIRALVIBE_HOME", str(PACKAGE_DIR.parent)))
OUTPUT_DIR = BASE_DIR / "outputs"
JOB_DATA_DIR = BASE_DIR / "job_data"

# Ensure directories exist
OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
JOB_DATA_DIR.mkdir(parents=True, exist_ok=True)

__all__ = ["PACKAGE_DIR", "BASE_DIR", "OUTPUT_DIR", "JOB_DATA_DIR"]
