import os


def get_secret(name: str, default: str | None = None) -> str | None:
    """
    Reads a secret from Docker secrets if available,
    otherwise falls back to a normal environment variable.
    """
    file_path = os.getenv(f"{name}_FILE")
    if file_path and os.path.exists(file_path):
        with open(file_path, "r") as f:
            return f.read().strip()
    return os.getenv(name, default)


def get_bool_secret(name: str, default: bool = False) -> bool:
    value = get_secret(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def get_int_secret(name: str, default: int) -> int:
    value = get_secret(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")
