
# Receiver package version
__version__ = '0.1.0'


def user_agent() -> str:
    """
    Build the User-Agent header sent with every API request.

    Returns:
        User agent string, e.g. 'beacon-receiver/0.1.0'
    """
    return f"beacon-receiver/{__version__}"
