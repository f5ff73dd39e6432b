# ABOUTME: Version information for access2siege
# ABOUTME: Single source for the --version flag

__version__ = "1.0.0"


def get_version_string() -> str:
    return f"access2siege {__version__}"
