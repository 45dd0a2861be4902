"""
Shared AWS resource helpers.

Small accessors for the response shapes returned by boto3 describe calls.
"""


def extract_tag_value(resource, key, default="Unnamed"):
    """
    Extract a specific tag value from an AWS resource.

    Args:
        resource: AWS resource dict containing 'Tags' key
        key: Tag key to search for
        default: Default value if tag not found (default: "Unnamed")

    Returns:
        str: Tag value if found, otherwise default value
    """
    for tag in resource.get("Tags", []):
        if tag["Key"] == key:
            return tag["Value"]
    return default


def get_error_code(exc):
    """Return the AWS error code carried by a botocore ClientError."""
    return exc.response.get("Error", {}).get("Code", "Unknown")
