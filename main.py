#!/usr/bin/env python3
"""Unified entry point for Wedding Event Planner.

This module starts the API server, the MCP server and the reminder watcher
using subprocess, and stops all of them on SIGINT/SIGTERM.
"""

import subprocess
import signal
import sys
import time
import logging
import os
from typing import List

from config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Global list to track all running processes
processes: List[subprocess.Popen] = []
shutdown_requested = False

SERVICES = [
    ("API server", "api_server.py", {}),
    ("MCP server", "mcp_server.py", {"MCP_TRANSPORT": "sse"}),
    ("Reminder watcher", "reminder_watcher.py", {}),
]


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    global shutdown_requested
    if shutdown_requested:
        logger.warning("Force shutdown requested")
        sys.exit(1)

    shutdown_requested = True
    logger.info(f"Received signal {signum}, initiating graceful shutdown...")
    shutdown_services()


def shutdown_services():
    """Stop all running services."""
    logger.info("Stopping all services...")
    for process in processes:
        if process.poll() is None:
            logger.info(f"Terminating process (PID: {process.pid})")
            process.terminate()

    # Wait for graceful termination (max 5 seconds per process)
    for process in processes:
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            logger.warning(f"Force killing process (PID: {process.pid})")
            process.kill()
            process.wait()

    logger.info("All services stopped")
    sys.exit(0)


def main():
    """Main entry point - start all services."""
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    logger.info("=" * 60)
    logger.info("Wedding Event Planner - Unified Startup")
    logger.info("=" * 60)

    current_dir = os.path.dirname(os.path.abspath(__file__))

    try:
        for name, script, extra_env in SERVICES:
            logger.info(f"Starting {name}...")
            env = os.environ.copy()
            env.update(extra_env)
            processes.append(subprocess.Popen(
                [sys.executable, script],
                cwd=current_dir,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT
            ))
            time.sleep(2)

        logger.info("=" * 60)
        logger.info("All services started successfully!")
        logger.info(f"  - API Server: http://127.0.0.1:{settings.API_PORT}")
        logger.info(f"  - API Docs: http://127.0.0.1:{settings.API_PORT}/docs")
        logger.info(f"  - MCP Server: http://{settings.MCP_HOST}:{settings.MCP_PORT}/sse")
        logger.info("  - Reminder Watcher: Active")
        logger.info("=" * 60)

        # Stop everything if any service dies
        while not shutdown_requested:
            for i, process in enumerate(processes):
                if process.poll() is not None:
                    logger.error(f"Process {i+1} (PID: {process.pid}) has stopped unexpectedly!")
                    shutdown_services()
            time.sleep(5)

    except OSError as e:
        logger.error(f"Error starting services: {e}")
        shutdown_services()


if __name__ == "__main__":
    main()
