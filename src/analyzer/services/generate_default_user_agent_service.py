import platform

DEFAULT_CHROME_VERSION = "120.0.0.0"


def generate_default_user_agent(chrome_version: str = DEFAULT_CHROME_VERSION) -> str:
    """
    Generates a generic Chrome user agent string based on the operating system.

    Args:
        chrome_version: The Chrome version to advertise (settings: 'user_agent.chrome_version').

    Returns:
        str: The constructed User-Agent string.
    """
    os_name = platform.system()

    if os_name == "Windows":
        os_part = "Windows NT 10.0; Win64; x64"
    elif os_name == "Darwin":  # macOS
        os_part = "Macintosh; Intel Mac OS X 10_15_7"
    elif os_name == "Linux":
        os_part = "X11; Linux x86_64"
    else:
        os_part = "Unknown OS"

    return (
        f"Mozilla/5.0 ({os_part}) AppleWebKit/537.36 (KHTML, like Gecko) "
        f"Chrome/{chrome_version or DEFAULT_CHROME_VERSION} Safari/537.36"
    )
