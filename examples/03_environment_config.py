"""
Environment configuration and logging.

Settings come from HTTP_REQUEST_* variables or a .env file.
"""

import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from src.http_request import HTTPRequestEngine, RequestSpec
from src.http_request.core.env_config import load_from_env, print_config_summary


def main():
    os.environ.setdefault("HTTP_REQUEST_MAX_REDIRECTS", "3")
    os.environ.setdefault("HTTP_REQUEST_LOG_ENABLED", "true")
    os.environ.setdefault("HTTP_REQUEST_LOG_LEVEL", "DEBUG")
    os.environ.setdefault("HTTP_REQUEST_LOG_FORMAT", "colored")

    config = load_from_env()
    print_config_summary(config)

    with HTTPRequestEngine(config) as engine:
        # Password in the URL and the Authorization header are masked in logs
        record = engine.request(RequestSpec(
            url="https://httpbin.org/redirect-to?url=/get&api_key=secret",
            auth={"user": "demo", "password": "hunter2"},
        ))
        print(f"Status: {record.status}, final URL: {record.url}")


if __name__ == "__main__":
    main()
