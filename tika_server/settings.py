"""
This module contains the configuration settings for the Tika server supervisor.
It defines the server defaults, download locations and timing constants.
Values can be overridden through environment variables or a `.env` file.
"""

import os
import pathlib
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(override=False)

#* --- Core Paths ---
BASE_DIR = pathlib.Path(__file__).resolve().parent.parent  # Project Root
BIN_DIR = BASE_DIR / "bin"

#* --- Server Defaults ---
DEFAULT_HOSTNAME = os.getenv("TIKA_HOSTNAME", "localhost")
DEFAULT_PORT = os.getenv("TIKA_PORT", "9998")
DEFAULT_STARTUP_TIMEOUT = float(os.getenv("TIKA_STARTUP_TIMEOUT", "30"))  # seconds
JAVA_EXECUTABLE = os.getenv("TIKA_JAVA_PATH", "java")

#* --- Supervisor Settings ---
POLL_INTERVAL = 0.5              # seconds between health checks
HEALTH_CHECK_TIMEOUT = 0.5       # upper bound for a single health check request
GRACEFUL_SHUTDOWN_TIMEOUT = 10   # seconds before force-killing
PROCESS_LOG_NAME = "tika-server"

#* --- Artifact Download ---
DEFAULT_VERSION = os.getenv("TIKA_VERSION", "1.14")
DEFAULT_JAR_PATH = BIN_DIR / f"tika-server-{DEFAULT_VERSION}.jar"
DOWNLOAD_BASE_URL = os.getenv("TIKA_DOWNLOAD_BASE_URL", "https://archive.apache.org/dist/tika/")
DOWNLOAD_TIMEOUT = int(os.getenv("TIKA_DOWNLOAD_TIMEOUT", "30"))
DOWNLOAD_CHUNK_SIZE = 8192
USER_AGENT = "tika-server-supervisor/1.0"

#* --- Logging ---
# Empty string disables the file handler
LOG_FILE_PATH = os.getenv("TIKA_LOG_FILE", "")
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 3
