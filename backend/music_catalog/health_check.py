#!/usr/bin/env python3
"""
Container health check for the catalog API, its blob storage and the
telemetry queue.
"""
import os
import sys
import requests

from music_catalog.config import get_settings
from music_catalog.queue import get_queue_manager
from music_catalog.services import storage_service
from music_catalog.logger import get_logger

logger = get_logger("health_check")

API_URL = os.getenv("HEALTH_CHECK_URL", "http://localhost:8000/health")


def check_api_health(url: str = API_URL) -> bool:
    """Check if the API is responding."""
    try:
        response = requests.get(url, timeout=10)
        if response.status_code == 200:
            return response.json().get("status") == "healthy"
        return False
    except requests.RequestException as e:
        logger.error(f"API health check failed: {e}")
        return False


def check_storage_access() -> bool:
    """Check that the R2 bucket is reachable with the configured credentials."""
    try:
        return storage_service.verify_bucket_access()
    except Exception as e:
        logger.error(f"Storage health check failed: {e}")
        return False


def check_redis_connection() -> bool:
    """Check the Redis connection behind the analytics queue."""
    try:
        queue_manager = get_queue_manager()
        queue_manager.get_connection().ping()
        backlog = queue_manager.queue_length(get_settings().analytics_queue)
        logger.info(f"Analytics queue backlog: {backlog}")
        return True
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        return False


def run_checks():
    checks = [
        ("API Server", check_api_health),
        ("Blob Storage", check_storage_access),
    ]
    # Redis is only needed while telemetry is on.
    if get_settings().analytics_active:
        checks.append(("Redis Connection", check_redis_connection))

    return [(name, check_func()) for name, check_func in checks]


def main():
    """Run all health checks."""
    print("Music Catalog Health Check")
    print("=" * 40)

    results = run_checks()
    for name, healthy in results:
        print(f"{name:<20} {'HEALTHY' if healthy else 'UNHEALTHY'}")

    print("=" * 40)
    if all(healthy for _, healthy in results):
        print("All systems healthy!")
        sys.exit(0)
    print("Some systems are unhealthy!")
    sys.exit(1)


if __name__ == "__main__":
    main()
