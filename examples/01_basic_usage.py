"""
Basic request examples.

Demonstrates GET with query parameters, form POST, multipart upload and
basic authentication against httpbin.org.
"""

import io

from src.http_request import PartSpec, RequestSpec, request, request_from_params


def get_with_query():
    """GET with query parameters."""
    print("\n=== GET with query ===")

    record = request(RequestSpec(
        url="https://httpbin.org/get",
        query_params={"page": "1", "tag": ["a", "b"]},
    ))

    print(f"Status: {record.status} ({record.http_version})")
    print(f"Content-Type: {record.content_type}")
    print(record.body)


def post_form():
    """POST with form parameters: sent as application/x-www-form-urlencoded."""
    print("\n=== POST form ===")

    record = request(RequestSpec(
        url="https://httpbin.org/post",
        method="POST",
        form_params={"a": "1", "b": "2"},
    ))
    print(f"Status: {record.status}")
    print(record.body)


def upload_multipart():
    """multipart/form-data with a text field and a file."""
    print("\n=== Multipart upload ===")

    record = request(RequestSpec(
        url="https://httpbin.org/post",
        method="POST",
        multipart=[
            PartSpec("description", "quarterly report"),
            PartSpec("file", io.BytesIO(b"col1,col2\n1,2\n"), file_name="report.csv"),
        ],
    ))
    print(f"Status: {record.status}")


def basic_auth():
    """Preemptive basic authentication."""
    print("\n=== Basic auth ===")

    record = request(RequestSpec(
        url="https://httpbin.org/basic-auth/user/passwd",
        auth={"user": "user", "password": "passwd"},
    ))
    print(f"Status: {record.status}")


def from_params():
    """Mapping in, mapping out."""
    print("\n=== request_from_params ===")

    result = request_from_params({
        "url": "https://httpbin.org/status/418",
        "method": "GET",
        "disableHttp2": True,
        "readTimeout": 5000,
    })
    print(f"Status: {result['status']} {result['message']}")


if __name__ == "__main__":
    get_with_query()
    post_form()
    upload_multipart()
    basic_auth()
    from_params()
